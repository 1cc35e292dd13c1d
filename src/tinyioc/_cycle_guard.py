from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from ._errors import CyclicDependencyError


if TYPE_CHECKING:
    from collections.abc import Iterator


class ResolutionChain:
    """Tokens currently under construction on one resolution path.

    Each top-level resolution owns its own chain. Nested constructions push
    their token on entry and pop it on exit, so the chain is empty again once
    the outermost construction unwinds, even when it raised.
    """

    def __init__(self) -> None:
        self._tokens: list[Any] = []

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __iter__(self) -> Iterator[Any]:
        return iter(self._tokens)

    @property
    def depth(self) -> int:
        return len(self._tokens)

    @contextmanager
    def enter(self, token: Any) -> Iterator[None]:
        if token in self._tokens:
            raise CyclicDependencyError((*self._tokens, token))

        self._tokens.append(token)
        try:
            yield
        finally:
            self._tokens.pop()
