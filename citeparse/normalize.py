"""Input and output text normalization for citations.

`normalize_cite_text` prepares a plain citation before tokenization and
`normalize_fields` cleans the grouped output fields. Both are deliberately
light: they only fix up spacing and a handful of typographic variants, and
leave the words themselves alone.
"""
from __future__ import annotations
import re
import unicodedata
from typing import Dict

_WS_RE = re.compile(r"\s+")
_TRANSLATE = str.maketrans({
    "\u00a0": " ",
    "\u2010": "-",
    "\u2011": "-",
    "\u2012": "-",
    "\u2013": "-",
    "\u2212": "-",
    "\u201c": "\"",
    "\u201d": "\"",
    "\u2018": "'",
    "\u2019": "'",
})


def normalize_cite_text(text: str) -> str:
    """
    Normalizes a plain-text citation before it is tokenized.

    Applies Unicode NFKC, maps typographic dashes and quotes to ASCII,
    removes zero-width characters and collapses whitespace runs.
    """
    text = unicodedata.normalize("NFKC", text)
    text = text.translate(_TRANSLATE)
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Cf")
    return _WS_RE.sub(" ", text).strip()


def normalize_fields(fields: Dict[str, str]) -> Dict[str, str]:
    """Strips surrounding whitespace from every field and drops empty ones."""
    out: Dict[str, str] = {}
    for label, value in fields.items():
        value = _WS_RE.sub(" ", value).strip()
        if value:
            out[label] = value
    return out
