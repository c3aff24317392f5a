"""Configuration model for :class:`~basic_event_emitter.EventEmitter`."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class EmitterConfig(BaseModel):
    """Behaviour switches for an emitter instance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # "raise" aborts the dispatch round, "log" reports and moves on
    listener_errors: Literal["raise", "log"] = "raise"
    # only consulted when the emitter has declared signatures
    validate_arguments: bool = True

    def merged(self, **overrides: Any) -> "EmitterConfig":
        """Return a validated copy with ``overrides`` applied."""
        if not overrides:
            return self
        return EmitterConfig.model_validate({**self.model_dump(), **overrides})
