from typing import Generic, NamedTuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class AvailabilityKey(NamedTuple):
    ability_id: str
    target_time: float
    caster_job_id: str | None = None
    event_id: str | None = None
    tank_position: str | None = None
    exclude_current_assignment: bool = False


class QueryCache(Generic[K, V]):
    """Memo table dropped wholesale on every state change."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: dict[K, V] = {}
        self.hits = 0
        self.misses = 0
        self.generation = 0

    def get(self, key: K) -> V | None:
        value = self._entries.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def put(self, key: K, value: V) -> V:
        self._entries[key] = value
        return value

    def invalidate(self) -> None:
        self._entries.clear()
        self.generation += 1

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "generation": self.generation,
        }

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
