"""Name-to-factory registry used for runtime selection of solvers and tables."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, TypeVar

T = TypeVar("T")


def _normalise(key: str) -> str:
    return key.strip().lower().replace("_", "-")


class Registry:
    def __init__(self, name: str) -> None:
        self.name = name
        self._items: Dict[str, Callable[..., Any]] = {}

    def register(self, key: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
        norm = _normalise(key)

        def decorator(factory: Callable[..., T]) -> Callable[..., T]:
            if norm in self._items:
                raise ValueError(f"{self.name} registry already has key {key}")
            self._items[norm] = factory
            return factory

        return decorator

    def get(self, key: str) -> Callable[..., Any]:
        try:
            return self._items[_normalise(key)]
        except KeyError as exc:
            known = ", ".join(sorted(self._items))
            raise KeyError(f"Unknown {self.name} '{key}' (known: {known})") from exc

    def create(self, key: str, *args: Any, **kwargs: Any) -> Any:
        return self.get(key)(*args, **kwargs)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _normalise(key) in self._items

    def keys(self) -> List[str]:
        return sorted(self._items)
