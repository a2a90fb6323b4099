from typing import Any, Awaitable, Callable, Dict, Iterable


class QueryCache:
    """
    Keyed cache of read results. Keys are slash-separated paths ("fees/catalog/PAN1");
    invalidating a prefix drops every key under it.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._entries:
            return self._entries[key]
        value = await loader()
        self._entries[key] = value
        return value

    def invalidate(self, *prefixes: str) -> int:
        """Drop keys equal to or nested under any prefix. Returns the number dropped."""
        stale = [k for k in self._entries if _matches(k, prefixes)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


def _matches(key: str, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if key == prefix or key.startswith(prefix + "/"):
            return True
    return False
