import logging
import sys


def setup_logging(level=logging.INFO):
    """Configure the root logger for the command-line tools."""
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # silence noisy libraries
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
