import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 100


class ResponseCache:
    """Bounded LRU cache of LLM drafts keyed by sanitized input.

    Holds the raw draft only; cached drafts still go through the full
    enhancement pipeline. Shared by every request in the process, so each
    get/put takes the lock. Concurrent misses for the same input may both
    call the LLM; the last put wins.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE):
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        self.capacity = capacity
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _key(sanitized_input: str) -> str:
        return hashlib.sha256(sanitized_input.encode("utf-8")).hexdigest()

    def get(self, sanitized_input: str) -> Optional[str]:
        key = self._key(sanitized_input)
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
        if value is not None:
            logger.debug("Response cache hit")
        return value

    def put(self, sanitized_input: str, value: str) -> None:
        key = self._key(sanitized_input)
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, sanitized_input: str) -> bool:
        with self._lock:
            return self._key(sanitized_input) in self._entries
