"""Tokenizer configuration value objects."""

from dataclasses import dataclass
from enum import Enum

from .errors import ConfigError


class Side(str, Enum):
    """Side of a sequence that padding or truncation applies to."""

    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def get(cls, name: "str | Side") -> "Side":
        """Get side by name (case-insensitive)."""
        if isinstance(name, Side):
            return name
        try:
            return cls[str(name).upper()]
        except KeyError:
            raise ConfigError(
                "unknown side",
                invalid_name=str(name),
                available=[side.value for side in cls],
            )


class Padding(str, Enum):
    """Width policy for padded batches."""

    LONGEST = "longest"
    MAX_LENGTH = "max_length"

    @classmethod
    def get(cls, name: "str | Padding") -> "Padding":
        """Get padding policy by name (case-insensitive)."""
        if isinstance(name, Padding):
            return name
        try:
            return cls[str(name).upper().replace("-", "_")]
        except KeyError:
            raise ConfigError(
                "unknown padding policy",
                invalid_name=str(name),
                available=[pad.value for pad in cls],
            )


DEFAULT_MAX_SEQUENCE_LENGTH = 512


@dataclass(frozen=True)
class TokenizerConfig:
    """
    Options consumed at tokenizer construction and on every encode call.

    :param max_sequence_length: Cap on ids per row, special tokens included.
        ``None`` disables truncation.
    :param lowercase: Case-fold text before splitting.
    :param add_special_tokens: Wrap content with sequence-start/end tokens.
    :param padding_side: Side that receives pad ids in a batch.
    :param truncation_side: Side that content tokens are dropped from.
    :param padding: ``"longest"`` pads to the longest row, ``"max_length"``
        always pads to ``max_sequence_length``.
    """

    max_sequence_length: int | None = DEFAULT_MAX_SEQUENCE_LENGTH
    lowercase: bool = False
    add_special_tokens: bool = True
    padding_side: Side = Side.RIGHT
    truncation_side: Side = Side.RIGHT
    padding: Padding = Padding.LONGEST

    def __post_init__(self) -> None:
        if self.max_sequence_length is not None and (
            isinstance(self.max_sequence_length, bool)
            or not isinstance(self.max_sequence_length, int)
            or self.max_sequence_length <= 0
        ):
            raise ConfigError(
                f"max_sequence_length must be a positive integer or None, got {self.max_sequence_length!r}"
            )
        # frozen dataclass: normalize string options through object.__setattr__
        object.__setattr__(self, "padding_side", Side.get(self.padding_side))
        object.__setattr__(self, "truncation_side", Side.get(self.truncation_side))
        object.__setattr__(self, "padding", Padding.get(self.padding))
        if self.padding is Padding.MAX_LENGTH and self.max_sequence_length is None:
            raise ConfigError("max_length padding requires max_sequence_length")
