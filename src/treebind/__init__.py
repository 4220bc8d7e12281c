"""Hierarchical dependency injection container.

This package provides a small dependency injection container for Python that
creates and wires objects on demand. Bindings are registered per container and
keyed by an optional tag plus the requested type; unresolved lookups fall back
to a parent container and finally to auto-construction from type hints.

Exports:
- `Container`: registration (singleton / transient / instance) and resolution.
- `Key`, `Lifetime`: binding identity and lifetime.
- `Inject`, `inject`: markers requesting member injection after construction.
- Errors: `TreebindError` and its subclasses.
"""

from ._container import Container
from ._errors import (
    DependencyCycleError,
    DuplicateRegistrationError,
    NoConstructorError,
    ResolutionError,
    TreebindError,
)
from ._inject import Inject, inject
from ._keys import Key, Lifetime


__all__ = [
    "Container",
    "DependencyCycleError",
    "DuplicateRegistrationError",
    "Inject",
    "Key",
    "Lifetime",
    "NoConstructorError",
    "ResolutionError",
    "TreebindError",
    "inject",
]
