"""Part-of-speech tagging and realignment onto citation tokens.

The external tagger sees the citation as one space-joined string and returns
markup such as ``<propn>Smith</propn> <punct>,</punct>``, whose element bodies
are substrings of its input in left-to-right order. The tagger splits text
differently from our whitespace tokenizer, so `add_parts_of_speech` maps the
tagged spans back onto the tokens with a single forward pass:

*   A token's *taggable surface* is its punctuation-stripped form, or its raw
    text when stripping leaves nothing.
*   The first remaining span whose text equals that surface supplies the
    token's tag; it and every span before it are consumed.
*   When no remaining span matches, the token stays untagged and the spans
    are left as they were for the next token.

Spans are never revisited or reordered, so tagger output that is shuffled
relative to the tokens under-tags the later tokens. Unmatched tokens are
counted and logged so such desyncs can be spotted.
"""
from __future__ import annotations
import html
import logging
from typing import List, Optional, Protocol, Tuple

from lxml import etree

from .errors import ConfigurationError
from .tokenizer import scrub_control_chars
from .types import EMPTY, Token, TokenSequence

# =========================
# Dependency guards
# =========================
try:
    import spacy
except ImportError:
    spacy = None

logger = logging.getLogger(__name__)

TaggedSpan = Tuple[str, str]


class PosTagger(Protocol):
    def add_tags(self, text: str) -> str:
        """Returns ``text`` marked up with one element per tagged word."""
        ...


class NullPosTagger:
    """A tagger that tags nothing, used when POS tagging is disabled."""

    def add_tags(self, text: str) -> str:
        return ""


class SpacyPosTagger:
    """
    Tags text with a spaCy pipeline, emitting lower-cased coarse POS tags.

    Attributes:
        model_name: Name of the spaCy model package to load.
    """

    def __init__(self, model_name: str = "en_core_web_sm"):
        self.model_name = model_name
        self._nlp = None

    @property
    def nlp(self):
        if self._nlp is None:
            if spacy is None:
                raise ConfigurationError(
                    "POS tagging is enabled in the configuration, but the spaCy package "
                    "is not installed. Install it or set pos_tagger.enable to false."
                )
            try:
                self._nlp = spacy.load(self.model_name, disable=["parser", "ner", "lemmatizer"])
            except OSError as exc:
                raise ConfigurationError(
                    f"spaCy model '{self.model_name}' is not available. "
                    "Install the model or disable POS tagging so training and inference match."
                ) from exc
            logger.info("Loaded spaCy model %s", self.model_name)
        return self._nlp

    def add_tags(self, text: str) -> str:
        doc = self.nlp(text)
        parts = []
        for tok in doc:
            if tok.is_space:
                continue
            tag = (tok.pos_ or "x").lower()
            parts.append(f"<{tag}>{html.escape(tok.text, quote=False)}</{tag}>")
        return " ".join(parts)


def build_pos_tagger(settings: Optional[dict] = None) -> PosTagger:
    """Creates the tagger described by the ``pos_tagger`` config section."""
    settings = settings or {}
    if not settings.get("enable", True):
        return NullPosTagger()
    return SpacyPosTagger(settings.get("spacy_model", "en_core_web_sm"))


_RECOVER_PARSER = etree.XMLParser(recover=True)


def parse_tagged_spans(tagged: str) -> List[TaggedSpan]:
    """Parses tagger markup into ordered ``(tag_name, text)`` spans."""
    if not tagged.strip():
        return []
    root = etree.fromstring(f"<string>{scrub_control_chars(tagged)}</string>", parser=_RECOVER_PARSER)
    if root is None:
        return []
    return [
        (str(el.tag), "".join(el.itertext()))
        for el in root
        if isinstance(el.tag, str)
    ]


def taggable_surface(token: Token) -> str:
    return token.raw if token.np == EMPTY else token.np


def align_spans(tokens: TokenSequence, spans: List[TaggedSpan]) -> int:
    """
    Assigns tags from ``spans`` to ``tokens`` in one forward pass.

    Returns:
        The number of tokens left without a part of speech.
    """
    pos = 0
    unmatched = 0
    for token in tokens:
        surface = taggable_surface(token)
        match = next(
            (i for i in range(pos, len(spans)) if spans[i][1] == surface),
            None,
        )
        if match is None:
            unmatched += 1
            logger.debug("No POS span for token '%s' (surface '%s')", token.raw, surface)
            continue
        token.part_of_speech = spans[match][0]
        pos = match + 1

    if unmatched:
        logger.debug("%d of %d tokens left without a part of speech", unmatched, len(tokens))
    return unmatched


def add_parts_of_speech(tokens: TokenSequence, tagger: PosTagger) -> int:
    """Tags the space-joined token text and aligns the result onto ``tokens``."""
    if not tokens:
        return 0
    tagged = tagger.add_tags(" ".join(tokens.raws))
    return align_spans(tokens, parse_tagged_spans(tagged))
