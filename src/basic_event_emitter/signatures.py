"""
signatures.py

Runtime validation of emitted arguments against declared event signatures.
"""

import collections.abc
from collections.abc import Hashable, Mapping
from typing import Any, get_args, get_origin, get_type_hints

from pydantic import ConfigDict, TypeAdapter, ValidationError

from .exceptions import EventArgumentsError, UnknownEventError

# Listener arguments are usually plain objects, not pydantic-aware types
_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True)


def _tuple_of(types: tuple) -> Any:
    """Build ``tuple[T1, T2, ...]`` from a tuple of types"""
    if not types:
        return tuple[()]
    return tuple[types]


def to_arguments_type(annotation: Any) -> Any:
    """
    Convert an event annotation to the tuple type of its positional arguments.

    ``tuple[...]`` is used as is, ``Callable[[A, B], R]`` contributes its
    parameter list, ``None`` means the event carries no arguments and any other
    type describes a single argument.
    """
    if annotation is None or annotation is type(None):
        return tuple[()]

    if annotation is tuple or annotation is collections.abc.Callable:
        return tuple[Any, ...]

    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is tuple:
        return annotation

    # Callable[[A, B], None] -> tuple[A, B]; Callable[..., None] -> tuple[Any, ...]
    if origin is collections.abc.Callable:
        params = args[0] if args else Ellipsis
        if params is Ellipsis:
            return tuple[Any, ...]
        return _tuple_of(tuple(params))

    return tuple[annotation]


class EventSignatures:
    """
    Compiled argument validators for a declared set of events.

    The declaration is either a class whose annotations map event names to
    argument types (a ``TypedDict`` works well) or a plain mapping.
    """

    def __init__(self, declaration: type | Mapping[Hashable, Any]) -> None:
        if isinstance(declaration, Mapping):
            hints = dict(declaration)
        elif isinstance(declaration, type):
            hints = get_type_hints(declaration)
        else:
            msg = f"Event declaration must be a class or a mapping, got {type(declaration).__name__}"
            raise TypeError(msg)

        self.declaration = declaration
        self._adapters: dict[Hashable, TypeAdapter] = {event: TypeAdapter(to_arguments_type(hint), config=_ADAPTER_CONFIG) for event, hint in hints.items()}

    @property
    def events(self) -> tuple[Hashable, ...]:
        return tuple(self._adapters)

    def __contains__(self, event: object) -> bool:
        return event in self._adapters

    def validate(self, event: Hashable, args: tuple[Any, ...]) -> None:
        """
        Check ``args`` against the signature declared for ``event``.

        Raises:
            UnknownEventError: The event is not declared.
            EventArgumentsError: The arguments do not match the declared types.
        """
        adapter = self._adapters.get(event)
        if adapter is None:
            raise UnknownEventError(event)
        try:
            adapter.validate_python(args, strict=True)
        except ValidationError as exc:
            raise EventArgumentsError(event, exc.errors()) from exc

    def json_schema(self, event: Hashable) -> dict[str, Any]:
        """Return the JSON schema describing the argument list of ``event``."""
        adapter = self._adapters.get(event)
        if adapter is None:
            raise UnknownEventError(event)
        return adapter.json_schema()
