"""Provides utility functions for reading and writing parser data files.

Three formats are handled here:

*   Tagged reference corpora: one tagged citation per line.
*   Flat training data: blank-line separated groups, one space-joined feature
    vector (raw token, feature columns, label) per line.
*   Parse results: a JSON document with the list of parsed records stored
    under a "results" key.
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple

from .results import ParseResult


def read_tagged_references(path: str | Path) -> List[Tuple[int, str]]:
    """
    Loads the non-blank lines of a tagged reference corpus.

    Returns:
        ``(line_number, line)`` pairs with one-based line numbers, so errors
        can point at the offending line of the file.

    Raises:
        FileNotFoundError: If the corpus file does not exist.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        raise FileNotFoundError(f"Tagged reference file not found at: {path}")
    return [(i, line.strip()) for i, line in enumerate(lines, start=1) if line.strip()]


def write_sequence(f, vectors: Sequence[Sequence[str]]) -> None:
    """Writes one group of feature vectors followed by a blank line."""
    for vec in vectors:
        f.write(" ".join(vec) + "\n")
    f.write("\n")


def iter_training_data(path: str | Path) -> Iterator[List[List[str]]]:
    """
    Yields the groups of a flat training data file as lists of split rows.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the rows of a group have differing column counts.
    """
    try:
        f = open(path, "r", encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"Training data file not found at: {path}")

    with f:
        group: List[List[str]] = []
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                if group:
                    yield group
                    group = []
                continue
            cols = line.split(" ")
            if group and len(cols) != len(group[0]):
                raise ValueError(
                    f"{path}:{lineno}: expected {len(group[0])} columns, got {len(cols)}"
                )
            group.append(cols)
        if group:
            yield group


def save_results(path: str | Path, results: Iterable[ParseResult]) -> None:
    """
    Saves parse results to a JSON file under a "results" key.

    The output is formatted with indentation for human readability.
    """
    data = {"results": [r.to_dict() for r in results]}
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
