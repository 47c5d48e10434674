"""Handling of special token literals that appear inside input text."""

from typing import Final, Literal, overload, override
from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging

from .types import Token
from .errors import ConfigError, SpecialTokenError

log = logging.getLogger(__name__)


class SpecialTokenStrategy(ABC):
    """Base strategy for special token literals found in text being encoded."""

    @abstractmethod
    def handle(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        """Return the special tokens that should be matched as atomic ids."""


class AllowAllStrategy(SpecialTokenStrategy):
    """Strategy that maps every special token literal to its id."""

    @override
    def handle(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        if not special_toks:
            log.warning("no special tokens registered")
        return dict(special_toks)


class AllowNoneRaiseStrategy(SpecialTokenStrategy):
    """Strategy that raises if special token literals are found in text."""

    @override
    def handle(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        """Raise when text contains disallowed special tokens."""
        found = {seq for seq in special_toks if seq in text}
        if found:
            raise SpecialTokenError(
                "special tokens found in text but not allowed", found_tokens=found
            )
        return {}


class AllowNoneStrategy(SpecialTokenStrategy):
    """Strategy that encodes special token literals as ordinary text."""

    @override
    def handle(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        if any(seq in text for seq in special_toks):
            log.warning("special tokens found in text but not allowed")
        return {}


class AllowCustomStrategy(SpecialTokenStrategy):
    """Strategy that maps only a chosen subset of special tokens."""

    def __init__(self, allowed_subset: set[str]) -> None:
        super().__init__()
        self.allowed_subset = allowed_subset

    @override
    def handle(self, text: str, special_toks: Mapping[str, Token]) -> dict[str, Token]:
        """Return only special tokens present in the allowed subset."""
        return {
            seq: tok for seq, tok in special_toks.items() if seq in self.allowed_subset
        }


StrategyName = Literal["all", "none", "none-raise", "custom"]

_SPECIAL_TOKEN_STRATEGIES: Final[dict[str, type[SpecialTokenStrategy]]] = {
    "all": AllowAllStrategy,
    "none": AllowNoneStrategy,
    "none-raise": AllowNoneRaiseStrategy,
    "custom": AllowCustomStrategy,
}


def list_strategies() -> list[str]:
    """Return available special token strategy names."""
    return list(_SPECIAL_TOKEN_STRATEGIES.keys())


@overload
def get_strategy(
    name: Literal["all", "none", "none-raise"],
) -> SpecialTokenStrategy: ...


@overload
def get_strategy(
    name: Literal["custom"], allowed_subset: set[str]
) -> AllowCustomStrategy: ...


def get_strategy(
    name: StrategyName = "none-raise", allowed_subset: set[str] | None = None
) -> SpecialTokenStrategy:
    """
    Create a special token strategy by name.

    :param name: Strategy identifier: "all", "none", "none-raise", or "custom".
    :param allowed_subset: Required for "custom"; tokens matched during encoding.
    :raises ConfigError: If name is unknown or allowed_subset is missing for custom.

    .. code-block:: python

        strategy = get_strategy("all")
        strategy = get_strategy("custom", allowed_subset={"[MASK]"})
    """
    if name not in _SPECIAL_TOKEN_STRATEGIES:
        raise ConfigError(
            "unknown strategy name",
            invalid_name=name,
            available=list(_SPECIAL_TOKEN_STRATEGIES.keys()),
        )

    if name == "custom":
        if allowed_subset is None:
            raise ConfigError("allowed_subset is required for custom strategy")
        return AllowCustomStrategy(allowed_subset)

    return _SPECIAL_TOKEN_STRATEGIES[name]()


__all__ = [
    "StrategyName",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "list_strategies",
    "get_strategy",
]
