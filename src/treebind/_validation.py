"""Registration-time checks standing in for generic type constraints."""

from __future__ import annotations

import inspect
import typing
from typing import Any, Protocol, cast, get_type_hints


def is_protocol(tp: object) -> bool:
    """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
    if not inspect.isclass(tp):
        return False
    if hasattr(typing, "is_protocol"):
        # https://docs.python.org/3/library/typing.html#typing.is_protocol
        return typing.is_protocol(tp)
    return issubclass(tp, cast("type", Protocol)) and bool(getattr(tp, "_is_protocol", False))


def validate_impl(token: object, impl: object) -> None:
    """Validate that 'impl' is a class implementing 'token'.

    - For non-type tokens nothing can be checked statically.
    - For normal classes/ABCs: require issubclass(impl, token).
    - For Protocols: nominal via MRO, otherwise structural conformance.
    """
    if not inspect.isclass(impl):
        msg = f"Implementation {impl!r} must be a class"
        raise TypeError(msg)

    if not inspect.isclass(token):
        return

    if not is_protocol(token):
        if not issubclass(impl, token):
            msg = f"Implementation {impl.__name__} must be a subclass of {token.__name__}"
            raise TypeError(msg)
        return

    if token in getattr(impl, "__mro__", ()):
        return
    validate_structural_conformance(token, impl)


def validate_instance(token: object, instance: object) -> None:
    if not inspect.isclass(token) or instance is None:
        return
    if is_protocol(token):
        validate_impl(token, type(instance))
    elif not isinstance(instance, token):
        msg = f"Instance {type(instance).__name__} is not an instance of {token.__name__}"
        raise TypeError(msg)


def validate_default_constructible(impl: type) -> None:
    """Require that ``impl()`` is a valid call."""
    if inspect.isabstract(impl) or is_protocol(impl):
        msg = f"{impl.__name__} cannot be instantiated"
        raise TypeError(msg)

    try:
        sig = inspect.signature(impl)
    except (TypeError, ValueError):
        # builtins without introspectable signatures
        return

    required = [
        name
        for name, p in sig.parameters.items()
        if p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    ]
    if required:
        msg = f"{impl.__name__} must be constructible without arguments; required parameters: {', '.join(required)}"
        raise TypeError(msg)


def validate_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + positional arity."""
    missing: list[str] = []
    mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls)
    except (TypeError, NameError):
        proto_hints = {}

    for name in proto_hints:
        if not name.startswith("_") and not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        impl_attr = getattr(impl, name, None)
        if impl_attr is None:
            missing.append(name)
            continue
        if not callable(impl_attr):
            mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            proto_arity = _positional_arity(inspect.signature(proto_attr))
            impl_arity = _positional_arity(inspect.signature(impl_attr))
        except (TypeError, ValueError) as e:
            mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        if impl_arity < proto_arity:
            mismatches.append(
                f"{name}: impl has fewer required positional params ({impl_arity}) than protocol ({proto_arity})"
            )

    if missing or mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if mismatches:
            msgs.append(f"signature mismatches: {', '.join(mismatches)}")
        msg = f"Implementation {impl.__name__} does not structurally conform to protocol {proto_cls.__name__}: {'; '.join(msgs)}"
        raise TypeError(msg)


def _positional_arity(sig: inspect.Signature) -> int:
    params: list[Any] = [p for p in sig.parameters.values() if p.name != "self"]
    return sum(
        1
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )
