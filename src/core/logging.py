from __future__ import annotations

import json
import logging
import sys

from src.core.context import get_current_company_id, get_current_request_id

event_logger = logging.getLogger("bunker.events")


class RequestContextFilter(logging.Filter):
    """Copy the request id and company id from contextvars onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        company_id = get_current_company_id()
        record.request_id = get_current_request_id() or "-"
        record.company_id = str(company_id) if company_id else "-"
        return True


def configure_logging(level: str | int = logging.INFO) -> None:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | company=%(company_id)s | %(message)s"
        )
    )
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def log_event(**fields: object) -> None:
    payload = {key: value for key, value in fields.items() if value is not None}
    payload.setdefault("request_id", get_current_request_id())
    event_logger.info(json.dumps(payload, default=str, sort_keys=True))
