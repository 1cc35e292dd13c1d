"""Construction strategies and the lifecycle wrappers around them.

A strategy knows how to produce one instance of a service:

- `TypeStrategy` picks a constructor of a class and resolves its parameters,
- `FactoryStrategy` hands the resolver to a user supplied callable,
- `InstanceStrategy` returns a pre-built object.

`TransientProvider` and `SingletonProvider` decorate a strategy with a
caching policy and keep track of every object they handed out, so the
container can release them when it is disposed.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, get_type_hints, runtime_checkable

from ._errors import NoConstructorError, describe
from ._validation import is_protocol, validate_product


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ._cycle_guard import ResolutionChain

    F = TypeVar("F")

_CONSTRUCTOR_MARKER = "__tinyioc_constructor__"
_MISSING = object()


class Resolver(Protocol):
    """What a strategy may ask of the container while it constructs."""

    @property
    def chain(self) -> ResolutionChain: ...

    def resolve(self, token: Any) -> Any: ...

    def resolve_all(self, token: Any) -> list[Any]: ...

    def can_resolve(self, token: Any) -> bool: ...


class Provider(Protocol):
    def construct(self, resolver: Resolver) -> object: ...

    def instances(self) -> list[object]: ...


@runtime_checkable
class Disposable(Protocol):
    def close(self) -> None: ...


def constructor(func: F) -> F:
    """Mark a classmethod (or staticmethod) as an additional injectable constructor.

    Example:
      class Client:
          def __init__(self, session: Session): ...

          @constructor
          @classmethod
          def from_settings(cls, settings: Settings) -> Client: ...

    """
    target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
    setattr(target, _CONSTRUCTOR_MARKER, True)
    return func


@dataclass(frozen=True)
class InjectionParameter:
    name: str
    token: Any
    default: Any = inspect.Parameter.empty
    positional_only: bool = False

    @property
    def required(self) -> bool:
        return self.default is inspect.Parameter.empty


@dataclass(frozen=True)
class Constructor:
    """One way of building a class: a callable and the tokens it needs, in order."""

    call: Callable[..., object]
    parameters: tuple[InjectionParameter, ...]

    def score(self, resolver: Resolver) -> int:
        return sum(1 for p in self.parameters if resolver.can_resolve(p.token))

    def invoke(self, resolver: Resolver) -> object:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for p in self.parameters:
            if p.required or resolver.can_resolve(p.token):
                value = resolver.resolve(p.token)
            elif p.positional_only:
                value = p.default
            else:
                continue

            if p.positional_only:
                args.append(value)
            else:
                kwargs[p.name] = value

        return self.call(*args, **kwargs)


def select_constructor(candidates: Sequence[Constructor], resolver: Resolver) -> Constructor:
    """Pick the candidate with the most resolvable parameters; the first one wins ties."""
    return max(candidates, key=lambda c: c.score(resolver))


def explicit_constructors(cls: type, parameter_lists: Sequence[Sequence[Any]]) -> list[Constructor]:
    return [
        Constructor(
            call=cls,
            parameters=tuple(
                InjectionParameter(name=f"arg{i}", token=token, positional_only=True)
                for i, token in enumerate(tokens)
            ),
        )
        for tokens in parameter_lists
    ]


def discover_constructors(cls: type) -> list[Constructor]:
    """Constructors of `cls` in declaration order: `__init__` first, then marked classmethods."""
    if inspect.isabstract(cls) or is_protocol(cls):
        return []

    candidates: list[Constructor] = []

    init = _init_constructor(cls)
    if init is not None:
        candidates.append(init)

    seen: set[str] = set()
    for klass in cls.__mro__:
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)

            if not isinstance(attr, (classmethod, staticmethod)):
                continue
            func = attr.__func__
            if not getattr(func, _CONSTRUCTOR_MARKER, False):
                continue

            bound = getattr(cls, name)
            candidates.append(Constructor(call=bound, parameters=_parameters(inspect.signature(bound), func, cls)))

    return candidates


def _init_constructor(cls: type) -> Constructor | None:
    if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
        return Constructor(call=cls, parameters=())

    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        logger.debug("No introspectable signature for %s", describe(cls))
        return None

    return Constructor(call=cls, parameters=_parameters(sig, _signature_source(cls), cls))


def _signature_source(cls: type) -> object:
    # the signature of a class without its own __init__ (e.g. a NamedTuple) comes from __new__
    if cls.__init__ is object.__init__:
        new = inspect.getattr_static(cls, "__new__")
        return getattr(new, "__func__", new)
    return inspect.getattr_static(cls, "__init__")


def _parameters(sig: inspect.Signature, func: object, cls: type) -> tuple[InjectionParameter, ...]:
    hints = _get_type_hints(func, cls)
    return tuple(
        InjectionParameter(
            name=name,
            # unannotated parameters are looked up by name
            token=hints.get(name, name),
            default=p.default,
            positional_only=p.kind is p.POSITIONAL_ONLY,
        )
        for name, p in sig.parameters.items()
        if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    )


def _get_type_hints(func: object, cls: type) -> dict[str, Any]:
    try:
        hints = get_type_hints(func)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    hints.pop("return", None)
    return hints


class TypeStrategy:
    """Build `impl` by constructor injection for the service registered as `token`."""

    def __init__(self, token: Any, impl: type, constructors: Sequence[Sequence[Any]] | None = None) -> None:
        self.token = token
        self.impl = impl
        self._candidates: list[Constructor] | None = (
            explicit_constructors(impl, constructors) if constructors is not None else None
        )

    def constructors(self) -> list[Constructor]:
        # discovered lazily so forward references can be defined after registration
        if self._candidates is None:
            self._candidates = discover_constructors(self.impl)
        return self._candidates

    def construct(self, resolver: Resolver) -> object:
        with resolver.chain.enter(self.token):
            candidates = self.constructors()
            if not candidates:
                raise NoConstructorError(self.impl)

            chosen = select_constructor(candidates, resolver)
            logger.debug(
                "Constructing %s with (%s)",
                describe(self.impl),
                ", ".join(describe(p.token) for p in chosen.parameters),
            )
            return chosen.invoke(resolver)


class FactoryStrategy:
    """Delegate construction to `factory(resolver)`."""

    def __init__(self, token: Any, factory: Callable[[Resolver], object]) -> None:
        self.token = token
        self.factory = factory

    def construct(self, resolver: Resolver) -> object:
        with resolver.chain.enter(self.token):
            instance = self.factory(resolver)

        validate_product(self.token, instance)
        return instance


class InstanceStrategy:
    """A pre-built object; it is its own provider."""

    def __init__(self, instance: object) -> None:
        self.instance = instance

    def construct(self, resolver: Resolver) -> object:  # noqa: ARG002
        return self.instance

    def instances(self) -> list[object]:
        return [self.instance]


class TransientProvider:
    def __init__(self, strategy: TypeStrategy | FactoryStrategy) -> None:
        self.strategy = strategy
        self._instances: list[object] = []

    def construct(self, resolver: Resolver) -> object:
        instance = self.strategy.construct(resolver)
        self._instances.append(instance)
        return instance

    def instances(self) -> list[object]:
        return list(self._instances)


class SingletonProvider:
    def __init__(self, strategy: TypeStrategy | FactoryStrategy) -> None:
        self.strategy = strategy
        self._instance: object = _MISSING

    def construct(self, resolver: Resolver) -> object:
        if self._instance is _MISSING:
            self._instance = self.strategy.construct(resolver)
        return self._instance

    def instances(self) -> list[object]:
        return [] if self._instance is _MISSING else [self._instance]
