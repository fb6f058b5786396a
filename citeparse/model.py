"""The boundary between the parser and the sequence-labeling model.

The parser talks to the model only through the `ModelAdapter` protocol, which
is stateful and handles one sequence at a time. Every use follows the same
order:

1.  `reset()` to drop any pending sequence.
2.  `add_vector()` once per token, in index order. The vector is sent as a
    space-joined line, exactly as it would appear in a training file.
3.  `run()` to label the accumulated sequence.
4.  `label_at()`, `sequence_probability()` and `position_probability()` to
    read the results.

Two adapters are provided. `CallableAdapter` runs a plain Python function
over the feature rows and is meant for tests and experiments. `CrfSuiteAdapter`
loads a model trained by `train_crf` with python-crfsuite; it turns the
column-based feature lines into CRFsuite attributes with a CRF++ style
template (``U00:%x[-1,0]/%x[0,0]`` style macros), so the same template file
drives both training and tagging.
"""
from __future__ import annotations
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

import pycrfsuite

from .errors import AdapterError, ConfigurationError

logger = logging.getLogger(__name__)


class ModelAdapter(Protocol):
    """
    A stateful sequence labeler driven one sequence at a time.

    Adapters report a confidence per position (`position_probability`) rather
    than per label. The per-label probability returned with a parse is the
    product of the position confidences of every token given that label,
    computed by `results.read_adapter_results`, so adapters never aggregate.
    """

    def reset(self) -> None: ...

    def add_vector(self, vector: Sequence[str]) -> None: ...

    def run(self) -> None: ...

    def label_at(self, i: int) -> str: ...

    def sequence_probability(self) -> float: ...

    def position_probability(self, i: int) -> float: ...


def _split_line(vector: Sequence[str]) -> List[str]:
    line = " ".join(vector).strip()
    if not line:
        raise AdapterError("Rejected empty feature line")
    cols = line.split(" ")
    if any(not c for c in cols):
        raise AdapterError(f"Rejected feature line with empty columns: {line!r}")
    return cols


class _SequenceBuffer:
    """Shared bookkeeping for adapters: pending rows and run results."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._rows: List[List[str]] = []
        self._labels: Optional[List[str]] = None
        self._confidences: List[float] = []
        self._probability: float = 1.0

    def add_vector(self, vector: Sequence[str]) -> None:
        if self._labels is not None:
            raise AdapterError("add_vector() called after run(); call reset() first")
        cols = _split_line(vector)
        if self._rows and len(cols) != len(self._rows[0]):
            raise AdapterError(
                f"Rejected feature line with {len(cols)} columns; "
                f"expected {len(self._rows[0])}: {' '.join(cols)!r}"
            )
        self._rows.append(cols)

    def _results(self) -> List[str]:
        if self._labels is None:
            raise AdapterError("Results requested before run()")
        return self._labels

    def label_at(self, i: int) -> str:
        return self._results()[i]

    def sequence_probability(self) -> float:
        self._results()
        return self._probability

    def position_probability(self, i: int) -> float:
        self._results()
        return self._confidences[i]


class CallableAdapter(_SequenceBuffer):
    """
    An in-memory adapter that labels rows with a Python callable.

    Args:
        labeler: Receives the split feature rows and returns one label per row.
        confidence: Optional function ``(rows, i, label) -> float`` giving the
            per-position confidence; defaults to 1.0 everywhere.
    """

    def __init__(
        self,
        labeler: Callable[[List[List[str]]], Sequence[str]],
        confidence: Optional[Callable[[List[List[str]], int, str], float]] = None,
    ):
        self.labeler = labeler
        self.confidence = confidence
        super().__init__()

    def run(self) -> None:
        labels = list(self.labeler(self._rows))
        if len(labels) != len(self._rows):
            raise AdapterError(
                f"Labeler returned {len(labels)} labels for {len(self._rows)} rows"
            )
        if self.confidence is None:
            confidences = [1.0] * len(labels)
        else:
            confidences = [float(self.confidence(self._rows, i, lab)) for i, lab in enumerate(labels)]
        self._labels = labels
        self._confidences = confidences
        self._probability = math.prod(confidences)


# --- CRF++ style feature templates ---

_MACRO_RE = re.compile(r"%x\[\s*(-?\d+)\s*,\s*(\d+)\s*\]")


@dataclass(frozen=True)
class TemplateLine:
    """One unigram template line: an id and the (row offset, column) cells it joins."""
    macro_id: str
    cells: Tuple[Tuple[int, int], ...]


class CrfTemplate:
    """
    A CRF++ style feature template.

    Only unigram (``U``) lines produce attributes; bigram (``B``) lines are
    accepted for compatibility and ignored, since CRFsuite always models
    label transitions. Blank lines and ``#`` comments are skipped.
    """

    def __init__(self, lines: Sequence[TemplateLine]):
        if not lines:
            raise ConfigurationError("Feature template defines no unigram lines")
        self.lines = tuple(lines)

    @classmethod
    def parse(cls, text: str, source: str = "<template>") -> "CrfTemplate":
        lines: List[TemplateLine] = []
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#") or line.startswith("B"):
                continue
            if not line.startswith("U"):
                raise ConfigurationError(f"{source}:{lineno}: unsupported template line {line!r}")
            macro_id, _, body = line.partition(":")
            cells = tuple((int(r), int(c)) for r, c in _MACRO_RE.findall(body))
            if not cells:
                raise ConfigurationError(f"{source}:{lineno}: template line {line!r} has no %x macros")
            lines.append(TemplateLine(macro_id=macro_id, cells=cells))
        return cls(lines)

    @classmethod
    def load(cls, path: Path | str) -> "CrfTemplate":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise FileNotFoundError(f"Template file not found at: {path}")
        return cls.parse(text, source=str(path))

    @property
    def max_column(self) -> int:
        return max(c for line in self.lines for _, c in line.cells)

    def expand(self, rows: Sequence[Sequence[str]]) -> List[List[str]]:
        """
        Expands column rows into per-position CRFsuite attribute lists.

        Cells that fall before the first or after the last row take the CRF++
        boundary values ``_B-n`` / ``_B+n``.

        Raises:
            AdapterError: If a template cell refers to a column the rows lack.
        """
        if rows and self.max_column >= len(rows[0]):
            raise AdapterError(
                f"Template refers to column {self.max_column}, "
                f"but feature rows have only {len(rows[0])} columns"
            )
        n = len(rows)
        xseq: List[List[str]] = []
        for t in range(n):
            attrs = []
            for line in self.lines:
                values = []
                for offset, col in line.cells:
                    j = t + offset
                    if j < 0:
                        values.append(f"_B{j}")
                    elif j >= n:
                        values.append(f"_B+{j - n + 1}")
                    else:
                        values.append(rows[j][col])
                attrs.append(f"{line.macro_id}={'/'.join(values)}")
            xseq.append(attrs)
        return xseq


class CrfSuiteAdapter(_SequenceBuffer):
    """
    Labels sequences with a CRFsuite model file.

    Args:
        model_path: Path to a model written by `train_crf`.
        template: The feature template the model was trained with.
    """

    def __init__(self, model_path: Path | str, template: CrfTemplate):
        self.model_path = Path(model_path)
        self.template = template
        self.tagger = pycrfsuite.Tagger()
        try:
            self.tagger.open(str(self.model_path))
        except (OSError, ValueError) as exc:
            raise AdapterError(f"Could not open CRF model {self.model_path}: {exc}") from exc
        super().__init__()

    def run(self) -> None:
        if not self._rows:
            self._labels, self._confidences, self._probability = [], [], 1.0
            return
        xseq = self.template.expand(self._rows)
        try:
            labels = list(self.tagger.tag(xseq))
            probability = self.tagger.probability(labels)
            confidences = [self.tagger.marginal(label, i) for i, label in enumerate(labels)]
        except (ValueError, RuntimeError) as exc:
            raise AdapterError(f"CRF inference failed on {len(self._rows)} tokens: {exc}") from exc
        self._labels = labels
        self._probability = probability
        self._confidences = confidences


def train_crf(
    template: CrfTemplate,
    sequences: Iterable[Sequence[Sequence[str]]],
    model_path: Path | str,
    params: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Trains a CRFsuite model from labeled feature rows.

    Args:
        template: The feature template used to expand the column rows.
        sequences: Groups of rows; each row is ``[raw, *features, label]``.
        model_path: Output path for the model file.
        params: CRFsuite trainer parameters (``c1``, ``c2``, ``max_iterations``...).

    Returns:
        A summary with the sequence and token counts and, when CRFsuite reports
        it, the last iteration's number and loss.

    Raises:
        AdapterError: If there is no training data or CRFsuite fails.
    """
    trainer = pycrfsuite.Trainer(verbose=False)
    n_seq = n_tok = 0
    for rows in sequences:
        if not rows:
            continue
        xrows = [list(r[:-1]) for r in rows]
        yseq = [r[-1] for r in rows]
        try:
            trainer.append(template.expand(xrows), yseq)
        except ValueError as exc:
            raise AdapterError(f"CRF trainer rejected sequence {n_seq + 1}: {exc}") from exc
        n_seq += 1
        n_tok += len(rows)

    if n_seq == 0:
        raise AdapterError("No training sequences provided. Cannot train a model.")

    trainer.set_params(dict(params or {}))
    Path(model_path).parent.mkdir(parents=True, exist_ok=True)
    logger.info("Training CRF model on %d sequences (%d tokens)", n_seq, n_tok)
    try:
        trainer.train(str(model_path))
    except (OSError, RuntimeError, ValueError) as exc:
        raise AdapterError(f"CRF training failed for {model_path}: {exc}") from exc

    summary: Dict[str, Any] = {"sequences": n_seq, "tokens": n_tok, "model_path": str(model_path)}
    info = trainer.logparser.last_iteration
    if info:
        summary["last_iteration"] = info.get("num")
        summary["loss"] = info.get("loss")
    return summary
