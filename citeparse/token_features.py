"""Registry of named per-token feature functions.

Every feature is a plain function ``fn(tokens, idx, author_names) -> str``
registered under a name with the :func:`feature` decorator. The engine in
:mod:`citeparse.features` evaluates the configured features for each token in
lexicographic name order, so a feature may read the value of another feature
of the *same* token from ``tokens[idx].computed`` as long as it declares that
dependency and the dependency's name sorts first. The config loader checks
both conditions.

Feature values end up as columns of a space-joined line handed to the CRF, so
they must be non-empty and contain no whitespace.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .types import EMPTY, TokenSequence

FeatureFn = Callable[[TokenSequence, int, Optional[List[str]]], str]


@dataclass(frozen=True)
class FeatureDef:
    """A registered feature function and the features it reads."""
    name: str
    fn: FeatureFn
    depends_on: Tuple[str, ...] = ()


FEATURES: Dict[str, FeatureDef] = {}


def feature(name: Optional[str] = None, depends_on: Tuple[str, ...] = ()):
    """Registers the decorated function as a named token feature."""
    def register(fn: FeatureFn) -> FeatureFn:
        key = name or fn.__name__
        if key in FEATURES:
            raise ValueError(f"Feature '{key}' registered twice")
        FEATURES[key] = FeatureDef(name=key, fn=fn, depends_on=tuple(depends_on))
        return fn
    return register


# --- Lexical features ---

@feature()
def toklcnp(tokens: TokenSequence, idx: int, author_names=None) -> str:
    return tokens[idx].lcnp


def _prefix(n: int) -> FeatureFn:
    def fn(tokens: TokenSequence, idx: int, author_names=None) -> str:
        return tokens[idx].raw[:n]
    return fn


def _suffix(n: int) -> FeatureFn:
    def fn(tokens: TokenSequence, idx: int, author_names=None) -> str:
        return tokens[idx].raw[-n:]
    return fn


for _n in range(1, 5):
    feature(f"first_{_n}_char" if _n == 1 else f"first_{_n}_chars")(_prefix(_n))
    feature(f"last_{_n}_char" if _n == 1 else f"last_{_n}_chars")(_suffix(_n))


@feature()
def capitalization(tokens: TokenSequence, idx: int, author_names=None) -> str:
    np = tokens[idx].np
    if np == EMPTY:
        return "others"
    if len(np) == 1 and np.isupper():
        return "singleCap"
    if np.isupper():
        return "ALLCAPS"
    if np[0].isupper():
        return "InitCap"
    return "others"


_YEAR_RE = re.compile(r"^[\[(]?(1[5-9]|20)\d\d[a-z]?[\])]?[.,;:]*$")
_PAGE_RE = re.compile(r"\d+\s*[-–—]+\s*\d+")
_VOL_RE = re.compile(r"\d+\(\d+([-–]\d+)?\)")
_ORDINAL_RE = re.compile(r"^\d+(st|nd|rd|th)$", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")


@feature()
def numbers(tokens: TokenSequence, idx: int, author_names=None) -> str:
    tok = tokens[idx]
    if _YEAR_RE.match(tok.raw):
        return "year"
    if _VOL_RE.search(tok.raw):
        return "possibleVol"
    if _PAGE_RE.search(tok.raw):
        return "possiblePage"
    if _ORDINAL_RE.match(tok.np):
        return "ordinal"
    if tok.np.isdigit():
        return f"{len(tok.np)}dig" if len(tok.np) <= 4 else "numbers"
    if _DIGIT_RE.search(tok.raw):
        return "hasDig"
    return "nonNum"


_QUOTES = "\"'“”‘’`"


@feature()
def punct(tokens: TokenSequence, idx: int, author_names=None) -> str:
    raw = tokens[idx].raw
    closing = raw.rstrip(".,;:")[-1:]
    if raw[0] in "([" and closing and closing in ")]":
        return "braces"
    if raw[0] in _QUOTES:
        return "leadQuote"
    if closing and closing in _QUOTES:
        return "endQuote"
    if "--" in raw or "—" in raw:
        return "multiHyphen"
    if raw[-1] in ",;:":
        return "contPunct"
    if raw[-1] in ".?!":
        return "stopPunct"
    if "-" in raw:
        return "hyphen"
    return "others"


_INITIAL_RE = re.compile(r"^[A-Z]\.(-?[A-Z]\.)*,?$")


@feature()
def name_initial(tokens: TokenSequence, idx: int, author_names=None) -> str:
    return "initial" if _INITIAL_RE.match(tokens[idx].raw) else "no"


_MONTHS = {
    "jan", "january", "feb", "february", "mar", "march", "apr", "april", "may",
    "jun", "june", "jul", "july", "aug", "august", "sep", "sept", "september",
    "oct", "october", "nov", "november", "dec", "december",
}


@feature()
def is_month(tokens: TokenSequence, idx: int, author_names=None) -> str:
    return "month" if tokens[idx].lcnp in _MONTHS else "no"


# --- Context features ---

@feature()
def location(tokens: TokenSequence, idx: int, author_names=None) -> str:
    """Relative position of the token in the citation, in twelfths."""
    return str(int(idx * 12 / len(tokens)))


_EDITOR_RE = re.compile(r"^\(?(eds?|editors?|hrsg)\.?\)?[.,]?$", re.IGNORECASE)
_CHAPTER_RE = re.compile(r"^(in:?|chapter|chap\.?|ch\.?)$", re.IGNORECASE)


@feature()
def possible_editor(tokens: TokenSequence, idx: int, author_names=None) -> str:
    if any(_EDITOR_RE.match(t.raw) for t in tokens):
        return "possibleEditors"
    return "noEditors"


@feature()
def possible_chapter(tokens: TokenSequence, idx: int, author_names=None) -> str:
    if any(_CHAPTER_RE.match(t.raw) for t in tokens):
        return "possibleChapter"
    return "noChapter"


@feature(depends_on=("toklcnp",))
def toklcnp_is_author(tokens: TokenSequence, idx: int, author_names=None) -> str:
    """Whether the token matches a presumed author name supplied by the caller."""
    if not author_names:
        return "noAuthorHint"
    return "yes" if tokens[idx].computed["toklcnp"] in author_names else "no"


@feature()
def part_of_speech(tokens: TokenSequence, idx: int, author_names=None) -> str:
    return tokens[idx].part_of_speech or "none"


# --- Markup features (html mode) ---

@feature()
def html_tag(tokens: TokenSequence, idx: int, author_names=None) -> str:
    node = tokens.node_of(tokens[idx])
    return node.tag if node else "none"


@feature()
def node_position(tokens: TokenSequence, idx: int, author_names=None) -> str:
    tok = tokens[idx]
    if tok.node_token_count is None:
        return "none"
    if tok.node_token_count == 1:
        return "sole"
    if tok.idx_in_node == 0:
        return "first"
    if tok.idx_in_node == tok.node_token_count - 1:
        return "last"
    return "middle"


@feature()
def same_node_as_prev(tokens: TokenSequence, idx: int, author_names=None) -> str:
    if idx == 0 or tokens[idx].node is None:
        return "no"
    return "yes" if tokens[idx - 1].node == tokens[idx].node else "no"
