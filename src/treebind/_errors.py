from __future__ import annotations


class TreebindError(Exception):
    """Base class for every error raised by the container."""


class DuplicateRegistrationError(TreebindError, KeyError):
    """A registration targeted a key already present in the same table."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead
        return str(self.args[0]) if self.args else ""


class ResolutionError(TreebindError, RuntimeError):
    pass


class NoConstructorError(ResolutionError):
    """Auto-construction targeted something that cannot be instantiated."""


class DependencyCycleError(ResolutionError):
    def __init__(self, chain: list[object], max_depth: int) -> None:
        self.chain = chain
        self.max_depth = max_depth
        path = " -> ".join(repr(k) for k in chain)
        super().__init__(f"Dependency cycle suspected: resolution exceeded max_depth={max_depth} ({path})")
