import logging
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)


class MetricsCache:
    """Memoize derived metrics by key until the log changes.

    Each key is computed at most once between two calls to
    :meth:`invalidate_all`. The store that owns the log calls it on every
    mutation, before returning to its caller.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str, compute: Callable[[], Any]) -> Any:
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        logger.debug("Computing metric %s", key)
        value = compute()
        self._entries[key] = value
        return value

    def invalidate_all(self) -> None:
        if self._entries:
            logger.debug("Invalidating %d cached metrics", len(self._entries))
        self._entries.clear()

    invalidate = invalidate_all

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
