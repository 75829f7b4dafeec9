"""Logging configuration shared by the API, the UI and the scripts."""
import logging

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the running process."""
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)
