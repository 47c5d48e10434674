"""Results produced by single and batch encoding."""

from dataclasses import dataclass, field

import numpy as np

from .types import Token


@dataclass(frozen=True)
class EncodedSequence:
    """Ids for one text, with the matching token strings."""

    ids: tuple[Token, ...]
    tokens: tuple[str, ...] = ()
    # 1 where the id is a sequence-start/end token added around the content
    special_tokens_mask: tuple[int, ...] = ()
    # content tokens dropped to fit the length cap
    num_truncated: int = 0

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class BatchResult:
    """
    Padded ids and attention mask for a batch, both shaped ``(batch, width)``.

    Arrays are ``int64`` and read-only.
    """

    ids: np.ndarray
    attention_mask: np.ndarray
    lengths: tuple[int, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.ids.shape != self.attention_mask.shape:
            raise ValueError(
                f"ids shape {self.ids.shape} does not match attention mask shape "
                f"{self.attention_mask.shape}"
            )
        self.ids.flags.writeable = False
        self.attention_mask.flags.writeable = False

    @property
    def shape(self) -> tuple[int, int]:
        return self.ids.shape

    def __len__(self) -> int:
        return self.ids.shape[0]

    def to_lists(self) -> tuple[list[list[Token]], list[list[int]]]:
        """Return ``(ids, attention_mask)`` as nested python lists."""
        return self.ids.tolist(), self.attention_mask.tolist()

    @classmethod
    def empty(cls) -> "BatchResult":
        return cls(
            ids=np.zeros((0, 0), dtype=np.int64),
            attention_mask=np.zeros((0, 0), dtype=np.int64),
        )
