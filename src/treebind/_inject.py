"""Member injection.

Members are marked for injection in three ways:

- fields: a class-level annotation ``Annotated[T, Inject]``; wrapping it in
  ``ClassVar`` injects onto the class instead of the instance.
- properties: a property whose getter is decorated with ``@inject`` and which
  has a setter.
- methods: any method decorated with ``@inject``; every parameter is resolved
  from its annotation.

A type may also list its dependencies explicitly through an
``__inject_members__`` mapping (or a callable returning one) of attribute
name to type.
"""

from __future__ import annotations

import inspect
import logging
import re
import sys
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, TypeVar, get_args, get_origin, get_type_hints

from ._errors import ResolutionError
from ._keys import Key


if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from ._container import Container
    from ._keys import ResolutionPath

    F = TypeVar("F")


logger = logging.getLogger(__name__)

_MARK = "__treebind_inject__"
_MARKER_NAME = re.compile(r"\bInject\b")


class Inject:
    """Marker placed in ``Annotated`` metadata to request field injection.

    Both ``Annotated[Repo, Inject]`` and ``Annotated[Repo, Inject()]`` work.
    """

    def __repr__(self) -> str:
        return "Inject()"


def inject(target: F) -> F:
    """Mark a method, or a property getter, for injection."""
    if isinstance(target, property):
        if target.fget is None:
            msg = "Cannot mark a property without a getter for injection"
            raise TypeError(msg)
        setattr(target.fget, _MARK, True)
        return target

    func = target.__func__ if isinstance(target, (staticmethod, classmethod)) else target
    if not callable(func):
        msg = f"@inject expects a method or property, got {target!r}"
        raise TypeError(msg)
    setattr(func, _MARK, True)
    return target


def is_marked(func: object) -> bool:
    return bool(getattr(func, _MARK, False))


def injected_field_type(hint: object) -> tuple[Any, bool] | None:
    """Return ``(type, is_static)`` for an annotation marked with ``Inject``."""
    is_static = False
    if get_origin(hint) is ClassVar:
        args = get_args(hint)
        if not args:
            return None
        hint = args[0]
        is_static = True

    if get_origin(hint) is not Annotated:
        return None

    tp, *metadata = get_args(hint)
    if any(m is Inject or isinstance(m, Inject) for m in metadata):
        return tp, is_static
    return None


def injected_fields(cls: type) -> dict[str, tuple[type, Any, bool]]:
    """Map each ``Inject``-marked field name to ``(declaring class, type, is_static)``.

    Annotations are evaluated one at a time, so an unresolvable annotation on
    an unmarked field (say a name imported only for type checking) is skipped.
    A marked field whose annotation cannot be resolved raises ResolutionError.
    """
    fields: dict[str, tuple[type, Any, bool]] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, hint in _own_annotations(klass).items():
            hint = _evaluate(klass, name, hint)
            marked = injected_field_type(hint) if hint is not None else None
            if marked is None:
                fields.pop(name, None)
                continue
            tp, is_static = marked
            source = getattr(tp, "__forward_arg__", tp)
            if isinstance(source, str):
                tp = _eval_annotation(klass, name, source)
            fields[name] = (klass, tp, is_static)
    return fields


def _own_annotations(klass: type) -> dict[str, Any]:
    try:
        return dict(inspect.get_annotations(klass))
    except NameError:
        # lazily evaluated annotations (3.14+) that reference missing names
        import annotationlib

        return dict(annotationlib.get_annotations(klass, format=annotationlib.Format.FORWARDREF))


def _evaluate(klass: type, name: str, hint: Any) -> Any:
    """Evaluate a string or forward-ref annotation; unmarked ones are skipped as None."""
    source = getattr(hint, "__forward_arg__", hint)
    if not isinstance(source, str):
        return hint

    if not _MARKER_NAME.search(source):
        return None
    return _eval_annotation(klass, name, source)


def _eval_annotation(klass: type, name: str, source: str) -> Any:
    module = sys.modules.get(klass.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    try:
        return eval(source, globalns, dict(vars(klass)))  # noqa: S307
    except NameError as exc:
        msg = f"Cannot inject field '{name}' of {klass.__qualname__}: unresolvable annotation {source!r} ({exc})"
        raise ResolutionError(msg) from exc


def safe_type_hints(obj: object) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except TypeError:
        return {}
    except NameError as exc:
        name = getattr(obj, "__qualname__", repr(obj))
        logger.warning("'%s' name error retrieving %s type hints", exc.name, name)
        return {}


class Injector:
    """Populates the marked members of a freshly produced instance."""

    def __init__(self, container: Container) -> None:
        self._container = container

    def inject(self, instance: object, trail: ResolutionPath) -> None:
        if instance is None:
            return

        cls = type(instance)
        self._inject_fields(instance, cls, trail)
        self._inject_properties(instance, cls, trail)
        self._inject_methods(instance, cls, trail)
        self._inject_declared_members(instance, trail)

    def _inject_fields(self, instance: object, cls: type, trail: ResolutionPath) -> None:
        for name, (owner, tp, is_static) in injected_fields(cls).items():
            value = self._container._resolve(Key.untagged(tp), trail)  # noqa: SLF001
            setattr(owner if is_static else instance, name, value)

    def _inject_properties(self, instance: object, cls: type, trail: ResolutionPath) -> None:
        for name, prop in _static_members(cls, property):
            if prop.fset is None or not is_marked(prop.fget):
                continue

            tp = safe_type_hints(prop.fget).get("return")
            if tp is None:
                setter_hints = safe_type_hints(prop.fset)
                setter_params = [p for p in inspect.signature(prop.fset).parameters if p != "self"]
                if setter_params:
                    tp = setter_hints.get(setter_params[0])
            if tp is None:
                msg = f"Cannot inject property '{name}' of {cls.__name__}: no type annotation on getter or setter"
                raise ResolutionError(msg)

            setattr(instance, name, self._container._resolve(Key.untagged(tp), trail))  # noqa: SLF001

    def _inject_methods(self, instance: object, cls: type, trail: ResolutionPath) -> None:
        for name, attr in _static_members(cls, (staticmethod, classmethod)):
            if is_marked(attr.__func__):
                self._call(cls, getattr(instance, name), attr.__func__, trail)

        for name, attr in _static_members(cls, object):
            if inspect.isfunction(attr) and is_marked(attr):
                self._call(cls, getattr(instance, name), attr, trail)

    def _call(self, cls: type, bound: Any, func: Any, trail: ResolutionPath) -> None:
        hints = safe_type_hints(func)
        args = []
        for name, p in inspect.signature(bound).parameters.items():
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue
            args.append(self._container._resolve_parameter(cls, name, p, hints, trail))  # noqa: SLF001
        bound(*args)

    def _inject_declared_members(self, instance: object, trail: ResolutionPath) -> None:
        declared = getattr(instance, "__inject_members__", None)
        if declared is None:
            return
        members: Mapping[str, Any] = declared() if callable(declared) else declared
        for name, tp in members.items():
            setattr(instance, name, self._container._resolve(Key.untagged(tp), trail))  # noqa: SLF001


def _static_members(cls: type, kind: type | tuple[type, ...]) -> Iterator[tuple[str, Any]]:
    for name in dir(cls):
        if name.startswith("__") and name.endswith("__"):
            continue
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, kind):
            yield name, attr
