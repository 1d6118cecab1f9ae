"""Publish helper shared by the domain services.

The store mutation has already committed when these run, so nothing here may
raise into the request path.
"""

import logging
from typing import Awaitable

from meupaozin.messaging.models import PublishResult


async def emit(
    publish: Awaitable[PublishResult], log: logging.Logger, what: str
) -> PublishResult | None:
    """Await a producer call and log anything but an acknowledged publish."""
    try:
        result = await publish
    except Exception as e:
        log.exception("Publishing %s raised: %s", what, e)
        return None
    if result.degraded:
        log.warning("Event %s spooled (broker unavailable) on %s", what, result.topic)
    elif not result.ok:
        log.warning(
            "Event %s not delivered on %s: %s (%s)",
            what,
            result.topic,
            result.error,
            result.error_kind.value if result.error_kind else "unknown",
        )
    return result
