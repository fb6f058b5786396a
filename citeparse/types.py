"""Defines the core data structures shared across the parser.

Contains the `Token` and `TokenSequence` classes produced by the tokenizers,
the `SourceNode` entries that record where html tokens came from, and the
`strip_punct` helper behind every token's punctuation-free forms.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Iterator, List, Literal, Optional, Sequence

__all__ = [
    "EMPTY",
    "Mode",
    "SourceNode",
    "Token",
    "TokenSequence",
    "FeatureVector",
    "strip_punct",
]

Mode = Literal["string", "html"]

# Sentinel used when stripping punctuation leaves nothing behind.
EMPTY = "EMPTY"

_NON_WORD_RE = re.compile(r"[^\w]")

FeatureVector = List[str]


def strip_punct(text: str) -> str:
    """
    Removes every non-word character from ``text``.

    Returns the ``EMPTY`` sentinel when nothing is left, so the result is
    always a non-empty, whitespace-free string. Stripping is idempotent:
    ``strip_punct(strip_punct(s)) == strip_punct(s)``.
    """
    stripped = _NON_WORD_RE.sub("", text)
    return stripped if stripped else EMPTY


@dataclass(frozen=True)
class SourceNode:
    """
    One text-bearing node of a parsed markup fragment.

    Tokens refer to these by their position in ``TokenSequence.nodes``, never
    by holding on to the parser's node objects.

    Attributes:
        node_id: Index of this node in the owning sequence's node table.
        tag: Tag of the element enclosing the text (``"fragment"`` for text
             sitting directly in the fragment root).
    """
    node_id: int
    tag: str


@dataclass(eq=False)
class Token:
    """
    Represents a single whitespace-delimited word of a citation.

    Tokens are created by a tokenizer and belong to exactly one
    ``TokenSequence``. The derived forms ``np`` and ``lcnp`` are computed on
    first access and cached. ``label`` and ``part_of_speech`` may each be
    assigned once; a second assignment raises ``ValueError``.

    Attributes:
        raw: The token text exactly as it appeared in the input.
        node: Index of the source node in the sequence's node table (html mode).
        idx_in_node: Position of this token among the tokens of its node.
        node_token_count: Number of tokens produced by the source node.
        computed: Feature values computed for this token during the current
                  feature pass, readable by later (dependent) features.
    """
    raw: str
    node: Optional[int] = None
    idx_in_node: Optional[int] = None
    node_token_count: Optional[int] = None
    computed: Dict[str, str] = field(default_factory=dict, repr=False)
    _label: Optional[str] = field(default=None, repr=False)
    _part_of_speech: Optional[str] = field(default=None, repr=False)

    @cached_property
    def np(self) -> str:
        """The raw text with punctuation removed, or ``EMPTY``."""
        return strip_punct(self.raw)

    @cached_property
    def lcnp(self) -> str:
        """The lower-cased ``np``; the ``EMPTY`` sentinel is kept as is."""
        return self.np if self.np == EMPTY else self.np.lower()

    @property
    def label(self) -> Optional[str]:
        return self._label

    @label.setter
    def label(self, value: Optional[str]) -> None:
        if self._label is not None:
            raise ValueError(f"Token '{self.raw}' already labeled '{self._label}'")
        self._label = value

    @property
    def part_of_speech(self) -> Optional[str]:
        return self._part_of_speech

    @part_of_speech.setter
    def part_of_speech(self, value: Optional[str]) -> None:
        if self._part_of_speech is not None:
            raise ValueError(
                f"Token '{self.raw}' already tagged '{self._part_of_speech}'"
            )
        self._part_of_speech = value

    def __str__(self) -> str:
        return self.raw


class TokenSequence(Sequence[Token]):
    """
    An ordered, fixed-length run of tokens in citation reading order.

    The sequence owns the node table its tokens point into. Position is
    meaningful: feature functions look at neighbours and absolute index.
    """

    def __init__(self, tokens: Sequence[Token], nodes: Sequence[SourceNode] = ()):
        self._tokens: tuple[Token, ...] = tuple(tokens)
        self.nodes: tuple[SourceNode, ...] = tuple(nodes)

    def __getitem__(self, idx):  # type: ignore[override]
        return self._tokens[idx]

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __repr__(self) -> str:
        return f"TokenSequence({[t.raw for t in self._tokens]!r})"

    def node_of(self, token: Token) -> Optional[SourceNode]:
        """Returns the source node a token came from, or ``None`` in string mode."""
        if token.node is None:
            return None
        return self.nodes[token.node]

    @property
    def raws(self) -> List[str]:
        return [t.raw for t in self._tokens]

    @property
    def labels(self) -> List[Optional[str]]:
        return [t.label for t in self._tokens]
