"""Publish/subscribe channel for live match updates."""

import logging
import threading
from collections.abc import Callable

from .models import Match

logger = logging.getLogger(__name__)

MatchCallback = Callable[[Match], None]


class MatchUpdateHub:
    """Fans persisted match states out to subscribers keyed by match id.

    Callbacks run synchronously in the publishing thread and must not block;
    the WebSocket endpoint hands the update to its own event loop.
    """

    def __init__(self):
        self._subscribers: dict[str, list[MatchCallback]] = {}
        self._lock = threading.Lock()

    def subscribe(self, match_id: str, callback: MatchCallback) -> Callable[[], None]:
        """Register ``callback`` for updates of ``match_id``.

        Returns a function that removes the subscription; calling it more
        than once is harmless.
        """
        with self._lock:
            self._subscribers.setdefault(match_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(match_id)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                    if not callbacks:
                        del self._subscribers[match_id]

        return unsubscribe

    def publish(self, match: Match) -> None:
        """Deliver ``match`` to every subscriber of its id."""
        with self._lock:
            callbacks = list(self._subscribers.get(match.id, []))

        dead_callbacks = []
        for callback in callbacks:
            try:
                callback(match)
            except Exception as e:
                logger.debug(f"Match update delivery failed for {match.id}: {e}")
                dead_callbacks.append(callback)

        # Drop subscribers that can no longer receive updates
        if dead_callbacks:
            with self._lock:
                remaining = self._subscribers.get(match.id, [])
                for callback in dead_callbacks:
                    if callback in remaining:
                        remaining.remove(callback)
                if not remaining:
                    self._subscribers.pop(match.id, None)

    def subscriber_count(self, match_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(match_id, []))
