"""Request correlation id carried through logs and published event headers."""

import logging
from contextvars import ContextVar

_NO_ID = "-"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default=_NO_ID)


def get_correlation_id() -> str | None:
    """Current correlation id, or None outside a request."""
    cid = correlation_id_var.get()
    return None if cid == _NO_ID else cid


def install_logrecord_factory() -> None:
    """Add `correlation_id` to every LogRecord so formatters can use %(correlation_id)s."""
    old_factory = logging.getLogRecordFactory()
    if getattr(old_factory, "_meupaozin_correlation", False):
        return

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get()
        return record

    record_factory._meupaozin_correlation = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(record_factory)
