"""Evaluates a trained parser against held-out tagged references.

Each held-out reference is aligned exactly as it would be for training, its
unlabeled feature vectors are labeled by the parser's model, and the predicted
labels are compared token by token with the reference labels. The comparison
is collected in a pandas DataFrame so per-label precision, recall and F1 fall
out of simple group-bys.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

import pandas as pd
from tqdm import tqdm

from .errors import AlignmentError
from .parser import CitationParser

logger = logging.getLogger(__name__)

TOKEN_COLUMNS = ["line", "index", "token", "reference", "predicted"]


@dataclass
class EvaluationReport:
    """
    Token-level comparison of predicted and reference labels.

    Attributes:
        tokens: One row per token with columns ``line``, ``index``, ``token``,
                ``reference`` and ``predicted``.
        failures: ``(line_number, message)`` for references that did not align.
    """
    tokens: pd.DataFrame
    failures: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        if self.tokens.empty:
            return 0.0
        return float((self.tokens["reference"] == self.tokens["predicted"]).mean())

    @property
    def disagreements(self) -> pd.DataFrame:
        return self.tokens[self.tokens["reference"] != self.tokens["predicted"]]

    def per_label(self) -> pd.DataFrame:
        """Precision, recall, F1 and support for every label seen in either column."""
        df = self.tokens
        labels = sorted(set(df["reference"]).union(df["predicted"]))
        rows = []
        for label in labels:
            tp = int(((df["reference"] == label) & (df["predicted"] == label)).sum())
            predicted = int((df["predicted"] == label).sum())
            support = int((df["reference"] == label).sum())
            precision = tp / predicted if predicted else 0.0
            recall = tp / support if support else 0.0
            f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0
            rows.append({
                "label": label,
                "precision": precision,
                "recall": recall,
                "f1": f1,
                "support": support,
            })
        return pd.DataFrame(rows, columns=["label", "precision", "recall", "f1", "support"]).set_index("label")


def evaluate(
    parser: CitationParser,
    references: Iterable[Tuple[int, str]],
    show_progress: bool = False,
) -> EvaluationReport:
    """
    Compares the parser's predictions with held-out tagged references.

    Args:
        parser: A parser whose adapter holds the model to evaluate.
        references: ``(line_number, tagged_line)`` pairs, as returned by
            `read_tagged_references`.
        show_progress: Display a tqdm progress bar.

    Returns:
        An `EvaluationReport`. References that fail to align are recorded in
        ``failures`` and skipped.
    """
    rows = []
    failures: List[Tuple[int, str]] = []
    for lineno, line in tqdm(list(references), desc="Evaluating", disable=not show_progress):
        try:
            tokens = parser.prepare_token_data(line, training=True)
        except AlignmentError as e:
            logger.warning("Skipping reference on line %d: %s", lineno, e)
            failures.append((lineno, str(e)))
            continue
        raws, vectors = parser.engine.compute(tokens)
        predicted, _, _ = parser.eval_model(vectors)
        for i, (tok, ref, pred) in enumerate(zip(raws, tokens.labels, predicted)):
            rows.append({
                "line": lineno,
                "index": i,
                "token": tok,
                "reference": ref if ref is not None else "none",
                "predicted": pred,
            })
    return EvaluationReport(tokens=pd.DataFrame(rows, columns=TOKEN_COLUMNS), failures=failures)
