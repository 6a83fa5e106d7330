"""Per-run progress history relayed to live observers.

The host appends worker messages here in the order they arrive; observers
that connect late get the buffered history first, then live messages.
"""

import logging
from collections import OrderedDict, deque
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Broadcaster = Callable[[str, dict], Awaitable[None]]

MAX_MESSAGES_PER_RUN = 500
MAX_RUNS_TRACKED = 20


class ProgressFeed:
    """Bounded in-memory progress history keyed by run id."""

    def __init__(
        self,
        broadcaster: Optional[Broadcaster] = None,
        max_messages: int = MAX_MESSAGES_PER_RUN,
        max_runs: int = MAX_RUNS_TRACKED,
    ):
        """Initialize the feed.

        Args:
            broadcaster: Async callable (run_id, message) forwarding to live observers
            max_messages: Messages kept per run
            max_runs: Runs kept before the oldest history is dropped
        """
        self.broadcaster = broadcaster
        self.max_messages = max_messages
        self.max_runs = max_runs
        self._history: "OrderedDict[str, deque[dict[str, Any]]]" = OrderedDict()

    async def publish(self, run_id: str, message: dict[str, Any]) -> None:
        """Append a message to the run's history and forward it live."""
        if run_id not in self._history:
            self._history[run_id] = deque(maxlen=self.max_messages)
            while len(self._history) > self.max_runs:
                self._history.popitem(last=False)
        self._history[run_id].append(message)

        if self.broadcaster is not None:
            await self.broadcaster(run_id, message)

    def history(self, run_id: str) -> list[dict[str, Any]]:
        return list(self._history.get(run_id, []))

    def latest(self, run_id: str) -> Optional[dict[str, Any]]:
        messages = self._history.get(run_id)
        return messages[-1] if messages else None
