#!/usr/bin/env python
"""
Serve the EduBook pricing API with uvicorn.

Usage:
    python scripts/run_api.py [--port 8000] [--no-reload]
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the EduBook pricing API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)
    log_level = env.get("EDUBOOK_LOG_LEVEL", "info").lower()

    cmd = [
        sys.executable, "-m", "uvicorn", "edubook_pricing.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
        "--log-level", log_level,
    ]
    if not args.no_reload:
        cmd.append("--reload")

    print(f"Serving EduBook pricing API on {args.host}:{args.port} (store={env.get('EDUBOOK_STORE', 'json')})")
    try:
        subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
