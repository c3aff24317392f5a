"""
Example: Advanced Event Usage

This example demonstrates typed event declarations, subclassing, piping between
emitters and the readiness gate.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TypedDict

from basic_event_emitter import EventArgumentsError, EventEmitter, create_emitter


class UserEvents(TypedDict):
    login: tuple[str]
    logout: Callable[[str], None]
    progress: tuple[int, int]


# Example 1: An emitter embedded by subclassing
class User(EventEmitter[UserEvents]):
    def login(self, username: str) -> None:
        self.emit("login", username)

    def logout(self, username: str) -> None:
        self.emit("logout", username)


# Example 2: A service that only becomes usable after start-up
class Database(EventEmitter[UserEvents]):
    async def connect(self) -> None:
        await asyncio.sleep(0.1)  # Simulate the connection handshake
        self.prepared = True

    async def query(self, sql: str) -> str:
        return await self.ready(lambda: f"rows for {sql!r}")


async def main() -> None:
    user = User()
    audit = EventEmitter(events=UserEvents, listener_errors="log")

    user.on("login", lambda username: print(f"User {username} logged in."))
    user.pipe("login", audit)
    user.pipe_once("logout", audit)
    audit.on("login", lambda username: print(f"[audit] login: {username}"))
    audit.on("logout", lambda username: print(f"[audit] logout: {username}"))

    user.login("Alice")
    user.logout("Alice")

    try:
        user.emit("login", 123)
    except EventArgumentsError as e:
        print(f"Rejected: {e}")

    # Bound emit functions for code that only takes a callback
    report = create_emitter(user, "progress")
    user.on("progress", lambda step, total: print(f"Progress {step}/{total}"))
    for step in range(1, 4):
        report(step, 3)

    db = Database()
    pending = asyncio.ensure_future(db.query("SELECT 1"))
    await db.connect()
    print(await pending)

    # Waiting for the next emission
    next_login = user.once("login", lambda username: username.upper())
    asyncio.get_running_loop().call_soon(user.login, "bob")
    print(await next_login)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
