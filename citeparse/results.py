"""Regroups labeled tokens into a labeled-field record."""
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Sequence, Tuple

from .errors import AdapterError
from .model import ModelAdapter

RAW_STRING_KEY = "raw_string"

FieldNormalizer = Callable[[Dict[str, str]], Dict[str, str]]


@dataclass(frozen=True)
class LabeledRecord(Mapping[str, str]):
    """
    The fields of one parsed citation, plus the untouched input.

    Behaves as a read-only mapping from label to text in which the reserved
    ``raw_string`` key holds the original input string.
    """
    fields: Mapping[str, str]
    raw_string: str

    def __post_init__(self) -> None:
        if RAW_STRING_KEY in self.fields:
            raise ValueError(f"'{RAW_STRING_KEY}' is reserved and cannot be a field label")
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __getitem__(self, key: str) -> str:
        if key == RAW_STRING_KEY:
            return self.raw_string
        return self.fields[key]

    def __iter__(self) -> Iterator[str]:
        yield from self.fields
        yield RAW_STRING_KEY

    def __len__(self) -> int:
        return len(self.fields) + 1

    def as_dict(self) -> Dict[str, str]:
        return {**self.fields, RAW_STRING_KEY: self.raw_string}


@dataclass(frozen=True)
class ParseResult:
    """
    The outcome of one ``parse`` call.

    Attributes:
        record: The labeled fields and raw string.
        sequence_probability: Probability of the whole predicted label path.
        label_probabilities: Per label, the product of the per-position
                             confidences of every token given that label.
        tokens: The raw token texts, index-aligned with ``labels``.
        labels: The predicted label of each token.
    """
    record: LabeledRecord
    sequence_probability: float
    label_probabilities: Mapping[str, float] = field(default_factory=dict)
    tokens: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "record": self.record.as_dict(),
            "sequence_probability": self.sequence_probability,
            "label_probabilities": dict(self.label_probabilities),
        }


def group_by_label(tokens: Sequence[str], labels: Sequence[str]) -> Dict[str, str]:
    """Joins the tokens of each label with single spaces, keeping token order."""
    if len(tokens) != len(labels):
        raise AdapterError(f"{len(labels)} labels do not match {len(tokens)} tokens")
    buckets: Dict[str, List[str]] = {}
    for tok, label in zip(tokens, labels):
        buckets.setdefault(label, []).append(tok)
    return {label: " ".join(toks) for label, toks in buckets.items()}


def read_adapter_results(adapter: ModelAdapter, n: int) -> Tuple[List[str], float, Dict[str, float]]:
    """
    Reads labels and probabilities for ``n`` positions from an adapter that has run.

    Returns:
        The labels, the whole-sequence probability, and the per-label product
        of per-position confidences.
    """
    labels: List[str] = []
    label_probs: Dict[str, float] = {}
    for i in range(n):
        label = adapter.label_at(i)
        labels.append(label)
        label_probs[label] = label_probs.get(label, 1.0) * adapter.position_probability(i)
    return labels, adapter.sequence_probability(), label_probs


def assemble(
    raw_string: str,
    tokens: Sequence[str],
    labels: Sequence[str],
    normalize_fields: FieldNormalizer,
) -> LabeledRecord:
    """
    Builds the record for one citation.

    Tokens are grouped by label, the field normalizer is applied once to the
    grouped mapping, and ``raw_string`` is attached last so normalization can
    never alter it.
    """
    grouped = group_by_label(tokens, labels)
    cleaned = normalize_fields(grouped)
    cleaned.pop(RAW_STRING_KEY, None)
    return LabeledRecord(fields=cleaned, raw_string=raw_string)
