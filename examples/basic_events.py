"""
Example: Basic Event Usage

This example demonstrates subscribing, unsubscribing, one-time listeners and
sealed events.
"""

from basic_event_emitter import EventEmitter, SealedEventError

emitter = EventEmitter()


# Example 1: Subscribing and emitting
def greet(name: str, index: int) -> None:
    print(f"Hello, {name}! (#{index})")


emitter.on("greet", greet)
emitter.emit("greet", "Alice", 0)

# Removing a listener; the second emit prints nothing
emitter.off("greet", greet)
emitter.emit("greet", "Bob", 1)


# Example 2: Handles
handler = emitter.on("farewell", lambda name: print(f"Goodbye, {name}!"))
emitter.emit("farewell", "Alice")
handler.stop()
emitter.emit("farewell", "Alice")


# Example 3: Listening once
future = emitter.once("download", lambda path: f"saved to {path}")
emitter.emit("download", "/tmp/a.bin")
emitter.emit("download", "/tmp/b.bin")
print(future.result())


# Example 4: Sealed events replay for late subscribers
emitter.emit_once("boot", 42)
emitter.on("boot", lambda code: print(f"Booted with {code}"))

try:
    emitter.emit("boot", 7)
except SealedEventError as e:
    print(f"Refused: {e}")
