import time
from typing import Callable, Dict, Hashable, Tuple


class CallbackDeduplicator:
    """
    Suppresses the same callback from the same chat arriving again within
    a short window (double taps, client retries). Different data, or the
    same data after the window, always passes.
    """

    def __init__(self, window_ms: int = 400, clock: Callable[[], float] = time.monotonic):
        self._window = window_ms / 1000.0
        self._clock = clock
        self._last: Dict[Hashable, Tuple[str, float]] = {}

    def is_duplicate(self, chat_id: Hashable, data: str) -> bool:
        now = self._clock()
        previous = self._last.get(chat_id)
        self._last[chat_id] = (data, now)

        if len(self._last) > 1024:
            self._last = {k: v for k, v in self._last.items() if now - v[1] < self._window}

        if previous is None:
            return False
        last_data, at = previous
        return last_data == data and now - at < self._window
