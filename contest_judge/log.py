import logging
import time


def configure_logging(level: int = logging.INFO) -> None:
    """Single stream handler with UTC timestamps on the root logger."""
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()

    class _UTCFormatter(logging.Formatter):
        converter = time.gmtime

    formatter = _UTCFormatter(
        fmt="%(asctime)s.%(msecs)03dZ - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)

    # Replace existing handlers to avoid duplicates on reload
    root.handlers = [handler]
