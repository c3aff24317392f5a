from .config import EmitterConfig
from .emitter import EventEmitter, EventHandler, create_emitter
from .exceptions import EventArgumentsError, EventEmitterError, SealedEventError, UnknownEventError
from .signatures import EventSignatures

__version__ = "0.1.6"

__all__ = [
    "EmitterConfig",
    "EventArgumentsError",
    "EventEmitter",
    "EventEmitterError",
    "EventHandler",
    "EventSignatures",
    "SealedEventError",
    "UnknownEventError",
    "create_emitter",
]
