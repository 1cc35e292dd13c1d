"""Minimal inversion-of-control container.

This package provides a lightweight IoC container for Python: register types,
factories and pre-built instances under a token, then let the container build
whole object graphs by constructor injection.

Exports:
- `Container`: registry and resolver; `resolve`, `resolve_all`, `can_resolve`, `dispose`.
- `ResolutionContext`: the resolver factories receive during a resolution.
- `Lifetime`: Enum for controlling object lifetimes (singleton or transient).
- `constructor`: marks a classmethod as an extra injectable constructor.
- `Disposable`: protocol of objects closed when the container is disposed.
- The `ContainerError` hierarchy.
"""

from ._container import Container, Lifetime, Registration, ResolutionContext
from ._cycle_guard import ResolutionChain
from ._errors import (
    ContainerError,
    CyclicDependencyError,
    DisposalError,
    IncompatibleImplementationError,
    NoConstructorError,
    RegistrationError,
    ResolutionError,
    UnregisteredServiceError,
)
from ._strategies import Disposable, Resolver, constructor


__all__ = [
    "Container",
    "ContainerError",
    "CyclicDependencyError",
    "Disposable",
    "DisposalError",
    "IncompatibleImplementationError",
    "Lifetime",
    "NoConstructorError",
    "Registration",
    "RegistrationError",
    "ResolutionChain",
    "ResolutionContext",
    "ResolutionError",
    "Resolver",
    "UnregisteredServiceError",
    "constructor",
]
