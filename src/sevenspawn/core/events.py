"""One-shot lifecycle events for a running process.

Each event name fires at most once. Subscribers that arrive after an event
fired are called immediately with the recorded payload, so nobody can miss
an exit that happened before they started listening.
"""

from __future__ import annotations

import traceback
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from sevenspawn.core.logging import get_logger

_logger = get_logger(__name__)

EVENT_EXIT = "exit"
EVENT_ERROR = "error"

EventCallback = Callable[[dict[str, Any]], None]


class ProcessEvents:
    """Sticky, fire-once pub/sub.

    Example:
        events = ProcessEvents()
        events.subscribe("exit", lambda data: print(data["status"]))
        events.publish("exit", {"status": 0, "signal": None})
        events.publish("exit", {"status": 1, "signal": None})  # ignored
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventCallback]] = defaultdict(list)
        self._fired: dict[str, dict[str, Any]] = {}

    def fired(self, event: str) -> bool:
        return event in self._fired

    def payload(self, event: str) -> dict[str, Any] | None:
        return self._fired.get(event)

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """Subscribe to an event; replays immediately if it already fired."""
        if event in self._fired:
            self._invoke(event, callback, self._fired[event])
            return
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: EventCallback) -> None:
        subs = self._subscribers.get(event)
        if subs and callback in subs:
            subs.remove(callback)

    def publish(self, event: str, data: dict[str, Any] | None = None) -> bool:
        """Fire an event.

        Returns:
            False if the event had already fired (the call is ignored)
        """
        if event in self._fired:
            _logger.debug(f"event '{event}' already fired; ignoring repeat")
            return False

        payload = dict(data or {})
        self._fired[event] = payload
        for cb in self._subscribers.pop(event, []):
            self._invoke(event, cb, payload)
        return True

    def _invoke(self, event: str, callback: EventCallback, data: dict[str, Any]) -> None:
        try:
            callback(data)
        except Exception as e:
            # One faulty listener must not prevent the others from settling.
            _logger.error(
                f"Error in handler for '{event}' (callback={callback}): "
                f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
            )
