from .models import ABTestEvent, ABTestEventType
from .emitter import (
    ABTestEventEmitter,
    NullEventEmitter,
    emit_safely,
    resolve_emitter,
)
from .progress_stream import RunProgressStream

__all__ = [
    "ABTestEvent",
    "ABTestEventType",
    "ABTestEventEmitter",
    "NullEventEmitter",
    "RunProgressStream",
    "emit_safely",
    "resolve_emitter",
]
