from __future__ import annotations

import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any, TypeVar, get_type_hints, overload

from ._errors import DependencyCycleError, DuplicateRegistrationError, NoConstructorError, ResolutionError
from ._inject import Injector
from ._keys import _EMPTY, Key, Lifetime, Registration, ResolutionPath
from ._validation import is_protocol, validate_default_constructible, validate_impl, validate_instance


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    T = TypeVar("T")

_MISSING: Any = object()


class Container:
    """Hierarchical DI container.

    - singleton / transient / pre-built instance bindings, optionally tagged
    - resolution falls back to the parent container, then to auto-construction
    - produced instances get their ``Inject``-marked members populated

    Not thread-safe: registration must not run concurrently with itself or
    with resolution. A singleton factory runs at most once per container.
    """

    def __init__(self, parent: Container | None = None, *, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            msg = f"max_depth must be a positive integer or None, got {max_depth!r}"
            raise ValueError(msg)

        self._parent = parent
        self._max_depth = max_depth
        self._singletons: dict[Key, Registration] = {}
        self._transients: dict[Key, Registration] = {}
        # interface key -> first transient registered for it
        self._transient_aliases: dict[Key, Registration] = {}
        self._lock = threading.RLock()
        self._injector = Injector(self)

    @property
    def parent(self) -> Container | None:
        return self._parent

    @property
    def max_depth(self) -> int | None:
        return self._max_depth

    def create_child(self, *, max_depth: int | None = _MISSING) -> Container:
        """Create a container that resolves its own bindings first, then falls back to this one."""
        if max_depth is _MISSING:
            max_depth = self._max_depth
        return Container(self, max_depth=max_depth)

    # Registry

    @overload
    def register_singleton(
        self, token: type[T], factory: Callable[[Container], T], *, tag: str | None = ...
    ) -> None: ...

    @overload
    def register_singleton(self, token: type[T], *, impl: type[T], tag: str | None = ...) -> None: ...

    @overload
    def register_singleton(
        self, token: Any, factory: Callable[[Container], Any], *, tag: str | None = ...
    ) -> None: ...

    def register_singleton(
        self,
        token: Any,
        factory: Callable[[Container], Any] | None = None,
        *,
        impl: type | None = None,
        tag: str | None = None,
    ) -> None:
        """Register a lazily created singleton.

        Example:
          container.register_singleton(Clock, lambda c: SystemClock())
          container.register_singleton(IRepo, impl=SqlRepo, tag="primary")

        """
        if impl is not None and factory is not None:
            msg = "Provide either `impl` or `factory`, not both."
            raise ValueError(msg)

        if impl is None and factory is None:
            msg = "Either `impl` or `factory` must be provided."
            raise ValueError(msg)

        if impl is not None:
            validate_impl(token, impl)
            validate_default_constructible(impl)
            factory = _default_factory(impl)

        self._add(self._singletons, Key(tag, token), Registration(factory=factory, lifetime=Lifetime.SINGLETON))

    def register_instance(
        self,
        token: Any,
        instance: object = _MISSING,
        *,
        impl: type | None = None,
        tag: str | None = None,
    ) -> None:
        """Register a pre-built instance (always singleton).

        With ``impl`` instead of ``instance``, ``impl()`` is constructed right away.
        """
        if impl is not None and instance is not _MISSING:
            msg = "Provide either `instance` or `impl`, not both."
            raise ValueError(msg)

        if impl is not None:
            validate_impl(token, impl)
            validate_default_constructible(impl)
            instance = impl()
        elif instance is _MISSING:
            msg = "Either `instance` or `impl` must be provided."
            raise ValueError(msg)
        else:
            validate_instance(token, instance)

        self._add(
            self._singletons,
            Key(tag, token),
            Registration(factory=None, lifetime=Lifetime.SINGLETON, cached_instance=instance),
        )

    def register_transient(self, token: Any, impl: type | None = None, *, tag: str | None = None) -> None:
        """Register a type that is constructed anew on every resolution.

        The binding is keyed by the implementation type, so one interface may
        have several transient implementations. When ``impl`` differs from
        ``token``, the first implementation registered for ``token`` is also
        what ``resolve(token)`` builds.
        """
        if impl is None:
            impl = token
        validate_impl(token, impl)
        validate_default_constructible(impl)

        alias = Key(tag, token) if token is not impl else None
        reg = Registration(factory=_default_factory(impl), lifetime=Lifetime.TRANSIENT)
        with self._lock:
            self._add(self._transients, Key(tag, impl), reg)
            if alias is not None:
                self._transient_aliases.setdefault(alias, reg)

    def _add(self, table: dict[Key, Registration], key: Key, reg: Registration) -> None:
        kind = reg.lifetime.value
        with self._lock:
            if key in table:
                msg = f"Duplicate {kind} registration: {key!r}"
                raise DuplicateRegistrationError(msg)
            table[key] = reg
        logger.debug("Registered %s binding %r", kind, key)

    def is_registered(self, token: Any, tag: str | None = None, *, recursive: bool = True) -> bool:
        key = Key(tag, token)
        if key in self._singletons or key in self._transients or key in self._transient_aliases:
            return True
        if recursive and self._parent is not None:
            return self._parent.is_registered(token, tag)
        return False

    # Resolver

    @overload
    def resolve(self, token: type[T], tag: str | None = ...) -> T: ...

    @overload
    def resolve(self, token: Any, tag: str | None = ...) -> object: ...

    def resolve(self, token: Any, tag: str | None = None) -> object:
        """Resolve the token to an instance.

        - singleton binding: cached instance, created on first use
        - transient binding: a fresh instance
        - otherwise the parent container resolves it
        - with no parent: auto-construct from ``__init__`` type hints
        The tag applies to this lookup only; dependencies are resolved untagged.
        """
        return self._resolve(Key(tag, token), ResolutionPath())

    def _resolve(self, key: Key, trail: ResolutionPath) -> object:
        trail = trail.enter(key, self._max_depth)
        if trail.exceeded:
            raise DependencyCycleError(list(trail.keys), trail.limit)

        reg = self._singletons.get(key)
        if reg is not None:
            return self._resolve_singleton(key, reg, trail)

        reg = self._transients.get(key)
        if reg is None:
            reg = self._transient_aliases.get(key)
        if reg is not None:
            logger.debug("Creating transient %r", key)
            instance = reg.factory(self)  # type: ignore[misc]
            self._injector.inject(instance, trail)
            return instance

        if self._parent is not None:
            logger.debug("Delegating %r to parent container", key)
            return self._parent._resolve(key, trail.leave())  # noqa: SLF001

        logger.debug("Auto-constructing %r", key)
        instance = Constructor(self).construct(key.token, trail)
        self._injector.inject(instance, trail)
        return instance

    def _resolve_singleton(self, key: Key, reg: Registration, trail: ResolutionPath) -> object:
        with self._lock:
            if reg.is_populated:
                return reg.cached_instance

            logger.debug("Creating singleton %r", key)
            instance = reg.factory(self)  # type: ignore[misc]
            # cached before injection so members may refer back to it
            reg.cached_instance = instance
            try:
                self._injector.inject(instance, trail)
            except BaseException:
                reg.cached_instance = _EMPTY
                raise
            return instance

    def _resolve_parameter(
        self,
        owner: type,
        name: str,
        p: inspect.Parameter,
        hints: dict[str, Any],
        trail: ResolutionPath,
    ) -> Any:
        """Resolve a constructor or injected-method parameter.

        Resolution precedence:
        1. type-based: registered anywhere in the chain, or a non-builtin class
        2. default
        3. error.
        """
        ann = hints.get(name, inspect.Parameter.empty)
        if ann is not inspect.Parameter.empty and self._can_resolve(ann):
            return self._resolve(Key.untagged(ann), trail)

        if p.default is not inspect.Parameter.empty:
            return p.default

        ann_repr = getattr(ann, "__name__", repr(ann)) if ann is not inspect.Parameter.empty else "no-annotation"
        msg = (
            f"Cannot satisfy parameter '{name}' for {owner.__name__}. "
            f"No registration/default found (annotation: {ann_repr})."
        )
        raise ResolutionError(msg)

    def _can_resolve(self, ann: Any) -> bool:
        try:
            if self.is_registered(ann):
                return True
        except TypeError:
            # unhashable annotation
            return False
        return inspect.isclass(ann) and getattr(ann, "__module__", "") != "builtins"

    def __repr__(self) -> str:
        return (
            f"<Container singletons={len(self._singletons)} transients={len(self._transients)} "
            f"parent={'yes' if self._parent is not None else 'no'}>"
        )


class Constructor:
    """Builds unregistered classes from their ``__init__`` signature."""

    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: Any, trail: ResolutionPath) -> Any:
        if not inspect.isclass(cls) or is_protocol(cls) or inspect.isabstract(cls):
            name = getattr(cls, "__qualname__", repr(cls))
            msg = f"No constructor found for {name}"
            raise NoConstructorError(msg)

        if cls.__init__ is object.__init__:
            return cls()

        sig = inspect.signature(cls)
        hints = _get_init_type_hints(cls)

        args, kwargs = [], {}
        for name, p in sig.parameters.items():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            value = self._resolver._resolve_parameter(cls, name, p, hints, trail)  # noqa: SLF001
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value

        return cls(*args, **kwargs)


def _default_factory(impl: type[T]) -> Callable[[Container], T]:
    def factory(_: Container) -> T:
        return impl()

    factory.__qualname__ = f"{impl.__qualname__}()"
    return factory


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints
