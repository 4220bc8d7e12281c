from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class Key:
    """Identity of a binding: an optional tag plus the requested type.

    ``None`` and ``""`` are the same tag.
    """

    tag: str | None
    token: Any

    def __post_init__(self) -> None:
        if self.tag is None:
            object.__setattr__(self, "tag", "")

    @classmethod
    def untagged(cls, token: Any) -> Key:
        return cls("", token)

    def __repr__(self) -> str:
        name = getattr(self.token, "__qualname__", None) or repr(self.token)
        if self.tag:
            return f"Key({self.tag!r}, {name})"
        return f"Key({name})"


class _Empty:
    def __repr__(self) -> str:
        return "<empty>"


_EMPTY: Any = _Empty()


@dataclass
class Registration:
    factory: Callable[..., object] | None
    lifetime: Lifetime
    cached_instance: object = _EMPTY  # singleton slot, filled at most once

    @property
    def is_populated(self) -> bool:
        return self.cached_instance is not _EMPTY


@dataclass(frozen=True)
class ResolutionPath:
    """Keys being resolved, outermost first, and the depth limit in force.

    The limit is the tightest ``max_depth`` of every container the lookup
    has passed through.
    """

    keys: tuple[Key, ...] = ()
    limit: int | None = None

    def enter(self, key: Key, max_depth: int | None) -> ResolutionPath:
        limit = self.limit
        if max_depth is not None:
            limit = max_depth if limit is None else min(limit, max_depth)
        return ResolutionPath((*self.keys, key), limit)

    def leave(self) -> ResolutionPath:
        return ResolutionPath(self.keys[:-1], self.limit)

    @property
    def exceeded(self) -> bool:
        return self.limit is not None and len(self.keys) > self.limit
