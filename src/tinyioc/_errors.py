from __future__ import annotations

import inspect
import types
from typing import Any


def describe(token: Any) -> str:
    """Human readable name of a service token, used in error messages."""
    if inspect.isclass(token) and not isinstance(token, types.GenericAlias):
        return token.__qualname__
    return repr(token)


class ContainerError(Exception):
    """Base class for every error raised by the container."""


class RegistrationError(ContainerError, ValueError):
    """Invalid arguments passed to a registration method."""


class IncompatibleImplementationError(RegistrationError, TypeError):
    """An implementation, instance or factory product does not conform to its class token."""


class ResolutionError(ContainerError, RuntimeError):
    """Base class for failures while building an object graph."""


class UnregisteredServiceError(ResolutionError, LookupError):
    """No registration matches the requested token."""

    def __init__(self, token: Any) -> None:
        self.token = token
        super().__init__(f"No registration found for token: {describe(token)}")


class NoConstructorError(ResolutionError):
    """The implementation class exposes no usable constructor."""

    def __init__(self, cls: type) -> None:
        self.cls = cls
        super().__init__(f"{describe(cls)} has no usable constructor")


class CyclicDependencyError(ResolutionError):
    """A token was requested again while it was still being constructed.

    ``chain`` holds the tokens on the current construction path, ending with
    the repeated one, e.g. ``(A, B, A)``.
    """

    def __init__(self, chain: tuple[Any, ...]) -> None:
        self.chain = chain
        path = " -> ".join(describe(token) for token in chain)
        super().__init__(
            f"{describe(chain[-1])} has cyclic dependencies. It has already been requested by this path: {path}"
        )


class DisposalError(ContainerError):
    """One or more instances failed to close while the container was disposed."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = errors
        super().__init__(f"{len(errors)} instance(s) failed to close: {errors[0]!r}")
