from __future__ import annotations

import inspect
import types
import typing
from typing import TYPE_CHECKING, Any, Protocol, get_type_hints

from ._errors import IncompatibleImplementationError, describe


if TYPE_CHECKING:
    from collections.abc import Callable


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: object) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and tp is not Protocol and bool(getattr(tp, "_is_protocol", False))


def is_class_token(tp: object) -> bool:
    # list[int] and friends pass inspect.isclass on Python 3.10
    return inspect.isclass(tp) and not isinstance(tp, types.GenericAlias)


def is_runtime_checkable_protocol(tp: type) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def validate_impl(token: type, impl: type) -> None:
    """Validate that 'impl' implements 'token'.

    - For normal classes/ABCs: require issubclass(impl, token).
    - For Protocols: accept nominal conformance via the MRO, otherwise
      compare members structurally.
    """
    problems = conformance_problems(token, impl)
    if problems:
        msg = f"Implementation {impl.__name__} does not conform to {token.__name__}: {'; '.join(problems)}"
        raise IncompatibleImplementationError(msg)


def validate_product(token: Any, instance: object) -> None:
    """Check an object built by a factory against a class token.

    Non-class tokens (strings, typing constructs) are not checked. Plain
    classes and runtime-checkable protocols use `isinstance`; other protocols
    are compared structurally against the instance's class.
    """
    if not is_class_token(token):
        return

    if is_protocol(token) and not is_runtime_checkable_protocol(token):
        problems = conformance_problems(token, type(instance))
    elif not isinstance(instance, token):
        problems = [f"not an instance of {token.__name__}"]
    else:
        problems = []

    if problems:
        msg = f"Resolved instance {type(instance).__name__} does not conform to {describe(token)}: {'; '.join(problems)}"
        raise IncompatibleImplementationError(msg)


def conformance_problems(token: type, impl: type) -> list[str]:
    """Everything that keeps instances of `impl` from standing in for `token`; empty when they can."""
    if not is_protocol(token):
        return [] if issubclass(impl, token) else [f"not a subclass of {token.__name__}"]

    if token in getattr(impl, "__mro__", ()):
        return []

    problems = [f"missing member {name}" for name in _protocol_members(token) if not hasattr(impl, name)]
    for name, proto_func in vars(token).items():
        if not name.startswith("_") and inspect.isfunction(proto_func) and hasattr(impl, name):
            problems.extend(_method_problems(name, proto_func, getattr(impl, name)))
    return problems


def _protocol_members(proto: type) -> list[str]:
    try:
        annotated = list(get_type_hints(proto, include_extras=True))
    except (TypeError, NameError):
        annotated = []

    methods = [name for name, attr in vars(proto).items() if inspect.isfunction(attr)]
    return [name for name in dict.fromkeys([*annotated, *methods]) if not name.startswith("_")]


def _method_problems(name: str, proto_func: Callable[..., Any], impl_attr: object) -> list[str]:
    if not callable(impl_attr):
        return [f"{name} is not callable"]

    try:
        proto_sig = inspect.signature(proto_func)
        impl_sig = inspect.signature(impl_attr)
    except (TypeError, ValueError) as e:
        return [f"{name}: unable to compare signatures ({e})"]

    problems = []
    expected, offered = _required_positional(proto_sig), _required_positional(impl_sig)
    if offered < expected:
        problems.append(f"{name} takes {offered} required positional parameter(s), protocol expects {expected}")

    if not _returns_compatible(impl_sig.return_annotation, proto_sig.return_annotation):
        problems.append(
            f"{name} returns {impl_sig.return_annotation!r}, protocol returns {proto_sig.return_annotation!r}"
        )
    return problems


def _required_positional(sig: inspect.Signature) -> int:
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return sum(
        1
        for p in sig.parameters.values()
        if p.name != "self" and p.kind in positional and p.default is inspect.Parameter.empty
    )


def _returns_compatible(impl_ret: object, proto_ret: object) -> bool:
    unchecked = (inspect.Signature.empty, Any)
    if any(impl_ret is u or proto_ret is u for u in unchecked) or impl_ret == proto_ret:
        return True

    # Unions, TypeVars and forward references are rejected
    return isinstance(impl_ret, type) and isinstance(proto_ret, type) and issubclass(impl_ret, proto_ret)
