#!/usr/bin/env python
"""
Launch the Streamlit calculator, explorer and frequent-price screens.

Usage:
    python scripts/run_app.py [--port 8501]
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the EduBook Streamlit UI")
    parser.add_argument("--port", type=int, default=8501)
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    ui_path = project_root / "src" / "edubook_pricing" / "ui" / "app_streamlit.py"
    if not ui_path.exists():
        print(f"ERROR: Streamlit entry point missing: {ui_path}")
        sys.exit(1)

    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)

    cmd = [sys.executable, "-m", "streamlit", "run", str(ui_path), "--server.port", str(args.port)]
    try:
        subprocess.run(cmd, cwd=str(project_root), env=env)
    except KeyboardInterrupt:
        print("\nCalculator UI stopped.")


if __name__ == "__main__":
    main()
