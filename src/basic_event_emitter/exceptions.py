"""Exception hierarchy for the event emitter."""

from collections.abc import Hashable
from typing import Any


class EventEmitterError(RuntimeError):
    """Base class for all errors raised by an emitter."""


class SealedEventError(EventEmitterError):
    """Raised when an event sealed by ``emit_once`` is emitted again."""

    def __init__(self, event: Hashable) -> None:
        self.event = event
        super().__init__(f"Event '{event}' was supposed to be emitted only once")


class UnknownEventError(EventEmitterError, LookupError):
    """Raised when an event is not part of the declared signatures."""

    def __init__(self, event: Hashable) -> None:
        self.event = event
        super().__init__(f"Event {event!r} is not declared")


class EventArgumentsError(EventEmitterError, TypeError):
    """Raised when emitted arguments do not match the declared signature."""

    def __init__(self, event: Hashable, errors: list[dict[str, Any]]) -> None:
        self.event = event
        self.errors = errors
        details = "; ".join(f"{'.'.join(str(part) for part in error['loc']) or '<args>'}: {error['msg']}" for error in errors)
        super().__init__(f"Invalid arguments for event {event!r}: {details}")
