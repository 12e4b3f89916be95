import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO"):
    """Configure root logging once for the server process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"ssi.{name}")
