from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    TypeVar,
    overload,
)

from ._cycle_guard import ResolutionChain
from ._errors import DisposalError, RegistrationError, UnregisteredServiceError, describe
from ._strategies import (
    Disposable,
    FactoryStrategy,
    InstanceStrategy,
    Provider,
    Resolver,
    SingletonProvider,
    TransientProvider,
    TypeStrategy,
)
from ._validation import is_class_token, validate_impl


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    T = TypeVar("T")


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class Registration:
    token: Any
    provider: Provider
    lifetime: Lifetime


class Container:
    """Minimal IoC container.

    - register types, factories or pre-built instances under a token
    - the same token may be registered many times: `resolve` uses the last
      registration, `resolve_all` builds every one of them
    - constructor injection with best-match constructor selection
    - lifetimes: transient (default) / singleton
    - `dispose` closes every object the container handed out.

    Not thread-safe: serialize registration externally.
    """

    def __init__(self) -> None:
        self._registrations: list[Registration] = []
        self._disposed = False

    def __enter__(self) -> Container:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registrations)

    @overload
    def register(
        self,
        token: type[T],
        impl: type[T] | None = ...,
        *,
        factory: None = ...,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        constructors: Sequence[Sequence[Any]] | None = ...,
    ) -> None: ...

    @overload
    def register(
        self,
        token: type[T],
        impl: None = ...,
        *,
        factory: Callable[[Resolver], T],
        lifetime: Lifetime = Lifetime.TRANSIENT,
    ) -> None: ...

    @overload
    def register(
        self,
        token: Any,
        impl: type | None = ...,
        *,
        factory: Callable[[Resolver], Any] | None = ...,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        constructors: Sequence[Sequence[Any]] | None = ...,
    ) -> None: ...

    def register(  # noqa: C901
        self,
        token: Any,
        impl: type | None = None,
        *,
        factory: Callable[[Resolver], Any] | None = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        constructors: Sequence[Sequence[Any]] | None = None,
    ) -> None:
        """Register a concrete type or a factory for a token.

        Example:
          container.register(Clock)
          container.register(IFoo, FooImpl, lifetime=Lifetime.SINGLETON)
          container.register("db", factory=lambda r: create_db(r.resolve(Settings)))
          container.register(Repo, constructors=[(Session,), (Session, Cache)])

        """
        if impl is not None and factory is not None:
            msg = "Provide either `impl` or `factory`, not both."
            raise RegistrationError(msg)

        if factory is not None and constructors is not None:
            msg = "`constructors` only applies to type registrations, not to `factory`."
            raise RegistrationError(msg)

        if impl is None and factory is None:
            if not is_class_token(token):
                msg = f"Either `impl` or `factory` must be provided for non-type token {describe(token)}."
                raise RegistrationError(msg)
            impl = token

        if not isinstance(lifetime, Lifetime):
            msg = f"Unknown lifetime: {lifetime!r}"
            raise RegistrationError(msg)

        strategy: TypeStrategy | FactoryStrategy
        if impl is not None:
            if not is_class_token(impl):
                msg = f"`impl` must be a class, got {impl!r}"
                raise RegistrationError(msg)
            # Only type tokens can be validated statically.
            if is_class_token(token):
                validate_impl(token, impl)
            strategy = TypeStrategy(token, impl, constructors)
        else:
            if not callable(factory):
                msg = f"`factory` must be callable, got {factory!r}"
                raise RegistrationError(msg)
            strategy = FactoryStrategy(token, factory)

        provider = SingletonProvider(strategy) if lifetime is Lifetime.SINGLETON else TransientProvider(strategy)
        self._append(Registration(token=token, provider=provider, lifetime=lifetime))

    def register_instance(self, token: Any, instance: object) -> None:
        """Register a pre-built instance (always singleton)."""
        if is_class_token(token):
            validate_impl(token, type(instance))

        self._append(Registration(token=token, provider=InstanceStrategy(instance), lifetime=Lifetime.SINGLETON))

    def _append(self, registration: Registration) -> None:
        self._registrations.append(registration)
        logger.debug(
            "Registered %s (%s, %s)",
            describe(registration.token),
            type(registration.provider).__name__,
            registration.lifetime.value,
        )

    def matching(self, token: Any) -> list[Registration]:
        return [reg for reg in self._registrations if reg.token == token]

    def can_resolve(self, token: Any) -> bool:
        return any(reg.token == token for reg in self._registrations)

    @overload
    def resolve(self, token: type[T]) -> T: ...

    @overload
    def resolve(self, token: Any) -> Any: ...

    def resolve(self, token: Any) -> Any:
        """Build the last registration made for `token`, with all its dependencies."""
        return ResolutionContext(self).resolve(token)

    @overload
    def resolve_all(self, token: type[T]) -> list[T]: ...

    @overload
    def resolve_all(self, token: Any) -> list[Any]: ...

    def resolve_all(self, token: Any) -> list[Any]:
        """Build every registration made for `token`, in registration order."""
        return ResolutionContext(self).resolve_all(token)

    def dispose(self) -> None:
        """Close every disposable instance produced by any registration.

        Objects handed out by several registrations are closed once. Failures
        do not stop the remaining instances from being closed; they are
        reported together afterwards as a `DisposalError`.
        """
        if self._disposed:
            logger.debug("Container already disposed")
            return
        self._disposed = True

        released: set[int] = set()
        errors: list[BaseException] = []
        for reg in self._registrations:
            for instance in reg.provider.instances():
                if id(instance) in released or not _is_disposable(instance):
                    continue
                released.add(id(instance))
                try:
                    instance.close()
                except Exception as e:
                    logger.exception("Failed to close %s registered for %s", type(instance).__name__, describe(reg.token))
                    errors.append(e)

        logger.debug("Disposed container: %d instance(s) closed", len(released))
        if errors:
            raise DisposalError(errors) from errors[0]


def _is_disposable(instance: object) -> bool:
    return not inspect.isclass(instance) and isinstance(instance, Disposable) and callable(instance.close)


class ResolutionContext:
    """The resolver handed to strategies and factories during one top-level resolution.

    Every nested `resolve` made through it shares one `ResolutionChain`, which
    is how circular dependency graphs are detected.
    """

    def __init__(self, container: Container, chain: ResolutionChain | None = None) -> None:
        self._container = container
        self._chain = chain if chain is not None else ResolutionChain()

    @property
    def container(self) -> Container:
        return self._container

    @property
    def chain(self) -> ResolutionChain:
        return self._chain

    def can_resolve(self, token: Any) -> bool:
        return self._container.can_resolve(token)

    def resolve(self, token: Any) -> Any:
        matches = self._container.matching(token)
        if not matches:
            raise UnregisteredServiceError(token)

        return matches[-1].provider.construct(self)

    def resolve_all(self, token: Any) -> list[Any]:
        matches = self._container.matching(token)
        if not matches:
            raise UnregisteredServiceError(token)

        return [reg.provider.construct(self) for reg in matches]
