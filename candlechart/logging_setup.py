"""JSON log lines tagged with the acquisition they belong to.

Every call to :meth:`AcquisitionChain.acquire` runs inside
:func:`acquisition_scope`, so the per-source failure and fallback records of
one load share an ``acquisition`` object (id + symbol) in their output.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Any, Dict, Iterator, Optional

# attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "acquisition"}


@dataclass(frozen=True)
class AcquisitionTag:
    id: str
    symbol: str

    def as_dict(self) -> Dict[str, str]:
        return {"id": self.id, "symbol": self.symbol}


ACQUISITION_CONTEXT: ContextVar[Optional[AcquisitionTag]] = ContextVar("acquisition", default=None)


@contextmanager
def acquisition_scope(symbol: str) -> Iterator[AcquisitionTag]:
    tag = AcquisitionTag(id=uuid.uuid4().hex[:12], symbol=symbol)
    token = ACQUISITION_CONTEXT.set(tag)
    try:
        yield tag
    finally:
        ACQUISITION_CONTEXT.reset(token)


class AcquisitionFilter(logging.Filter):
    """Stamp records with the acquisition active in the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.acquisition = ACQUISITION_CONTEXT.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        tag = getattr(record, "acquisition", None)
        if isinstance(tag, AcquisitionTag):
            payload["acquisition"] = tag.as_dict()

        fields = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS and not key.startswith("_")}
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, separators=(",", ":"))


_CONFIGURED = False


def setup_logging(level: int | str = logging.INFO, *, stream: IO[str] | None = None) -> None:
    """Install the JSON handler on the root logger; later calls only adjust the level."""

    global _CONFIGURED
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)
    if _CONFIGURED:
        return

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(AcquisitionFilter())
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    logging.captureWarnings(True)
    _CONFIGURED = True


__all__ = [
    "ACQUISITION_CONTEXT",
    "AcquisitionFilter",
    "AcquisitionTag",
    "JsonFormatter",
    "acquisition_scope",
    "setup_logging",
]
