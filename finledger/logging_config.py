"""
Structured logging setup.

Every log record is emitted as one JSON object per line (python-json-logger)
so it can be shipped to any log aggregator without a parsing step. Services
pass domain identifiers through ``extra=`` and they show up as top-level keys:

    logger.info("transfer_created", extra={"project_id": str(pid), "amount": "50.00"})
"""

import logging
import sys
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger


class LedgerJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that always carries timestamp, level and logger name."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
        json_output: Emit JSON lines when True, plain text otherwise.
    """
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(LedgerJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # SQL echo is controlled by DEBUG through the engine, keep the pool quiet
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
