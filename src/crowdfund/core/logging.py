"""
Logging for the crowdfund ledger.

Every module logs through a child of the `crowdfund` logger (`crowdfund.ledger`,
`crowdfund.storage.redis`, ...). `configure_logging` gives that tree a single
stdout handler, so embedding applications can leave their root logger alone.
"""

import logging
import sys

LOGGER_NAME = "crowdfund"

PLAIN_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"name": "%(name)s", "message": "%(message)s"}'
)


def configure_logging(level: int | str = logging.INFO, json_format: bool = False) -> logging.Logger:
    """
    Point the ledger's logger tree at stdout.

    Safe to call once per `CrowdFund` instance: the previous handler is
    replaced rather than stacked.

    Args:
        level: Threshold for ledger records, e.g. "DEBUG" to see lock traffic
        json_format: Emit one JSON object per line for log shippers
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(logging.Formatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    # Records stop here; the application's root handlers never see them twice
    root.propagate = False
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for one ledger component, e.g. get_logger("ledger")."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
