"""
emitter.py

Event emitter with one-time events, replay for late subscribers, a readiness
gate and piping between emitters.
"""

import asyncio
import concurrent.futures
import inspect
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from logging import getLogger
from typing import Any, ClassVar, Generic, Self, TypeVar, get_args, get_origin

from .config import EmitterConfig
from .exceptions import SealedEventError
from .signatures import EventSignatures

logger = getLogger("basic_event_emitter")

E = TypeVar("E")

Listener = Callable[..., Any]
Deferred = asyncio.Future | concurrent.futures.Future


class _ReservedEvent:
    """Event key that can never be equal to a user supplied one."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


_READY_EVENT = _ReservedEvent("internal_ready")


@dataclass(eq=False)
class _Subscription:
    event: Hashable
    # what off()/off_once() compare against; None for anonymous once() waiters
    callback: Listener | None
    handler: Listener
    once: bool = False
    active: bool = True
    # set for once() waiters so a reported failure is not reported twice
    future: "Deferred | None" = None


class EventHandler:
    """Handle returned by :meth:`EventEmitter.on` and :meth:`EventEmitter.pipe`."""

    def __init__(self, emitter: "EventEmitter[Any]", event: Hashable, callback: Listener) -> None:
        self._emitter = emitter
        self.event = event
        self.callback = callback

    def stop(self) -> None:
        """Remove the listener this handle was created for. Safe to call repeatedly."""
        self._emitter.off(self.event, self.callback)

    def remove(self) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"EventHandler(event={self.event!r}, callback={self.callback!r})"


def _create_future() -> Deferred:
    """Create a future on the running loop, or a thread future outside of one."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return concurrent.futures.Future()
    return loop.create_future()


def _chain(source: asyncio.Future, target: asyncio.Future) -> None:
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exc = source.exception()
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


def _settle(future: Deferred, result: Any) -> None:
    """Resolve ``future`` with ``result``, awaiting it first when it is awaitable."""
    if future.done():
        return
    if not inspect.isawaitable(result):
        future.set_result(result)
        return
    if not isinstance(future, asyncio.Future):
        logger.warning("Callback returned %r but no event loop is running; resolving with the awaitable itself.", result)
        future.set_result(result)
        return
    inner = asyncio.ensure_future(result, loop=future.get_loop())
    inner.add_done_callback(lambda done: _chain(done, future))


def _fail(future: Deferred, exc: BaseException) -> None:
    if not future.done():
        future.set_exception(exc)


def _mark_retrieved(future: Deferred) -> None:
    """Stop asyncio from logging a failure that was already raised or logged."""
    if isinstance(future, asyncio.Future) and future.done() and not future.cancelled():
        future.exception()


class EventEmitter(Generic[E]):
    """
    Publish/subscribe event emitter.

    ``E`` is the event declaration: a class (usually a ``TypedDict``) whose
    annotations describe the arguments of each event. Subclasses written as
    ``class User(EventEmitter[UserEvents])`` pick the declaration up
    automatically, and so does an instance created as
    ``EventEmitter[UserEvents]()`` once construction has finished; otherwise
    pass it as ``events``. Without a declaration any hashable value can be
    used as an event name and arguments are not checked.

    Example:
        >>> emitter = EventEmitter()
        >>> handler = emitter.on("greet", lambda name: print(f"Hello, {name}!"))
        >>> emitter.emit("greet", "Alice")
        Hello, Alice!
        >>> handler.stop()
    """

    _events_declaration: ClassVar[Any] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in cls.__dict__.get("__orig_bases__", ()):
            origin = get_origin(base)
            if not (isinstance(origin, type) and issubclass(origin, EventEmitter)):
                continue
            args = get_args(base)
            if args and not isinstance(args[0], TypeVar):
                cls._events_declaration = args[0]

    def __init__(self, events: Any = None, config: EmitterConfig | None = None, **overrides: Any) -> None:
        """
        Initialize the event emitter.

        Args:
            events: Event declaration used to validate emitted arguments
            config: Emitter configuration, defaults to ``EmitterConfig()``
            **overrides: Individual ``EmitterConfig`` fields to override
        """
        self.config = (config or EmitterConfig()).merged(**overrides)
        declaration = events if events is not None else self._events_declaration
        self._signatures = EventSignatures(declaration) if declaration is not None else None
        self._subscriptions: list[_Subscription] = []
        self._one_time_events: dict[Hashable, tuple[Any, ...]] = {}
        self._prepared = False

    @property
    def signatures(self) -> EventSignatures | None:
        """Compiled signatures of the declared events, or ``None`` when undeclared."""
        if self._signatures is None:
            # typing sets __orig_class__ on EventEmitter[UserEvents]() after __init__
            args = get_args(self.__dict__.get("__orig_class__"))
            if args and not isinstance(args[0], TypeVar):
                self._signatures = EventSignatures(args[0])
        return self._signatures

    def _subscribe(self, event: Hashable, callback: Listener | None, handler: Listener, *, once: bool, future: Deferred | None = None) -> None:
        self._subscriptions.append(_Subscription(event, callback, handler, once=once, future=future))

    def _discard(self, event: Hashable, callback: Listener | None, *, once_only: bool) -> None:
        kept = []
        for subscription in self._subscriptions:
            if subscription.event == event and (callback is None or subscription.callback is callback) and (subscription.once or not once_only):
                subscription.active = False
            else:
                kept.append(subscription)
        self._subscriptions = kept

    def _ensure_not_sealed(self, event: Hashable) -> None:
        if event in self._one_time_events:
            raise SealedEventError(event)

    def _validate(self, event: Hashable, args: tuple[Any, ...]) -> None:
        if self.signatures is None or not self.config.validate_arguments or event is _READY_EVENT:
            return
        self.signatures.validate(event, args)

    def _invoke(self, handler: Listener, event: Hashable, args: tuple[Any, ...], future: Deferred | None = None) -> None:
        """Call one listener, applying the ``listener_errors`` policy."""
        try:
            handler(*args)
        except Exception:
            if future is not None:
                _mark_retrieved(future)
            if self.config.listener_errors == "raise":
                raise
            logger.exception("Listener %r for event %r failed", handler, event)

    def _dispatch(self, event: Hashable, args: tuple[Any, ...]) -> list[_Subscription]:
        # Listeners added during this round wait for the next one
        matching = [s for s in self._subscriptions if s.event == event]
        for subscription in matching:
            if not subscription.active:
                continue
            if subscription.once:
                subscription.active = False
                self._subscriptions.remove(subscription)
            self._invoke(subscription.handler, event, args, subscription.future)
        return matching

    @property
    def prepared(self) -> bool:
        """Whether the emitter has been marked ready. Assigning ``True`` releases ``ready()`` waiters."""
        return self._prepared

    @prepared.setter
    def prepared(self, value: bool) -> None:
        self._prepared = bool(value)
        logger.debug("Emitter %r prepared=%s", self, self._prepared)
        if self._prepared:
            self.emit(_READY_EVENT)

    def ready(self, callback: Callable[[], Any] | None = None) -> asyncio.Future:
        """
        Wait for the emitter to be prepared.

        Must be called with a running event loop. When the emitter is already
        prepared the callback runs on a later loop iteration, never inline.

        Args:
            callback: Optional function, sync or async, run once ready

        Returns:
            A future resolved with the callback's (awaited) result
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def run() -> None:
            try:
                result = callback() if callback is not None else None
            except Exception as exc:  # noqa: BLE001
                _fail(future, exc)
                return
            _settle(future, result)

        if self._prepared:
            loop.call_soon(run)
        else:
            self._subscribe(_READY_EVENT, None, run, once=True)
        return future

    def clear_events(self) -> None:
        """Drop every subscription and every sealed event. ``prepared`` is left as is."""
        for subscription in self._subscriptions:
            subscription.active = False
        self._subscriptions = []
        self._one_time_events.clear()

    def on(self, event: Hashable, callback: Listener) -> EventHandler:
        """
        Add a listener to an event.

        If the event was sealed by :meth:`emit_once` the callback is invoked
        right away with the stored arguments and nothing is registered.

        Args:
            event: Event to listen to
            callback: Callback to call when the event is emitted

        Returns:
            A handle whose ``stop()``/``remove()`` removes the listener
        """
        if event in self._one_time_events:
            self._invoke(callback, event, self._one_time_events[event])
        else:
            self._subscribe(event, callback, callback, once=False)
        return EventHandler(self, event, callback)

    def off(self, event: Hashable, callback: Listener | None = None) -> Self:
        """
        Remove listeners from an event.

        Args:
            event: Event to remove listeners from
            callback: Only remove this callback; all listeners when omitted
        """
        self._discard(event, callback, once_only=False)
        return self

    def once(self, event: Hashable, callback: Listener | None = None) -> Deferred:
        """
        Add a listener that is removed after being called once.

        Returns an ``asyncio.Future`` when called with a running loop and a
        ``concurrent.futures.Future`` otherwise. It resolves with the return
        value of ``callback`` (awaited if it is awaitable), or ``None``.

        If the event is already sealed the callback runs right away. A failure
        then always reaches the returned future, and is also logged when
        ``listener_errors`` is ``"log"``.
        """
        future = _create_future()

        def resolve(args: tuple[Any, ...]) -> Exception | None:
            try:
                result = callback(*args) if callback is not None else None
            except Exception as exc:  # noqa: BLE001
                _fail(future, exc)
                return exc
            _settle(future, result)
            return None

        def handler(*args: Any) -> None:
            exc = resolve(args)
            if exc is not None:
                raise exc

        if event not in self._one_time_events:
            self._subscribe(event, callback, handler, once=True, future=future)
        elif self.config.listener_errors == "raise":
            resolve(self._one_time_events[event])
        else:
            self._invoke(handler, event, self._one_time_events[event], future)
        return future

    def off_once(self, event: Hashable, callback: Listener | None = None) -> Self:
        """Remove listeners added with :meth:`once`, leaving :meth:`on` listeners alone."""
        self._discard(event, callback, once_only=True)
        return self

    def emit(self, event: Hashable, *args: Any) -> Self:
        """
        Emit an event to its listeners, in registration order.

        Raises:
            SealedEventError: The event was already sealed by ``emit_once``.
        """
        self._ensure_not_sealed(event)
        self._validate(event, args)
        self._dispatch(event, args)
        return self

    def emit_once(self, event: Hashable, *args: Any) -> Self:
        """
        Emit an event and seal it.

        Current listeners are called, then the arguments are stored so that
        later ``on``/``once`` calls replay them, and every remaining listener of
        the event is dropped. Listeners added while the current ones ran get
        the stored arguments once the event is sealed. The event can not be
        emitted again until :meth:`clear_events`.

        Raises:
            SealedEventError: The event was already sealed.
        """
        self._ensure_not_sealed(event)
        self._validate(event, args)
        matching = self._dispatch(event, args)
        # a listener may have sealed it during dispatch
        self._ensure_not_sealed(event)
        late = [s for s in self._subscriptions if s.event == event and s not in matching]
        self._one_time_events[event] = args
        logger.debug("Event %r sealed with %d argument(s)", event, len(args))
        self.off(event)
        for subscription in late:
            self._invoke(subscription.handler, event, args, subscription.future)
        return self

    def pipe(self, event: Hashable, emitter: "EventEmitter[Any]") -> EventHandler:
        """Forward every emission of ``event`` to ``emitter``."""

        def forward(*args: Any) -> None:
            emitter.emit(event, *args)

        return self.on(event, forward)

    def pipe_once(self, event: Hashable, emitter: "EventEmitter[Any]") -> Deferred:
        """Forward the next emission of ``event`` to ``emitter``, sealing it there."""

        def forward(*args: Any) -> None:
            emitter.emit_once(event, *args)

        return self.once(event, forward)


def create_emitter(emitter: EventEmitter[Any], event: Hashable, *, once: bool = False) -> Callable[..., None]:
    """
    Create a simple emit function bound to one event.

    Args:
        emitter: Emitter to emit on
        event: Event name
        once: Seal the event with ``emit_once`` instead of ``emit``

    Returns:
        A function that emits ``event`` with the arguments it is called with
    """

    def emit(*args: Any) -> None:
        if once:
            emitter.emit_once(event, *args)
        else:
            emitter.emit(event, *args)

    return emit
