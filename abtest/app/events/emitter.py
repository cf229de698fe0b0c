from __future__ import annotations

import logging
from typing import Optional, Protocol

from abtest.app.events.models import ABTestEvent

logger = logging.getLogger(__name__)


class ABTestEventEmitter(Protocol):
    """
    Interface for broadcasting A/B test observations.

    Implementations must be:
    - non-blocking (or minimally blocking)
    - fail-safe (emission failures must not break a run)
    - observational only
    """

    async def emit(self, event: ABTestEvent) -> None:
        ...


class NullEventEmitter:
    """
    A safe no-op emitter, used when nobody listens.
    """

    async def emit(self, event: ABTestEvent) -> None:
        return


async def emit_safely(
    emitter: ABTestEventEmitter,
    event: ABTestEvent,
) -> None:
    """
    Emit an event, logging instead of raising on emitter failure.
    """
    try:
        await emitter.emit(event)
    except Exception as exc:
        logger.warning(
            "Event emission failed for %s: %s", event.event_type.value, exc
        )


def resolve_emitter(
    emitter: Optional[ABTestEventEmitter],
) -> ABTestEventEmitter:
    return emitter or NullEventEmitter()
