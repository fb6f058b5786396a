"""Splits citation strings into token sequences.

Two tokenizers are provided. `tokenize_text` splits a plain string on runs of
whitespace. `tokenize_html` parses a marked-up fragment with lxml, walks its
text nodes in document order, and records for every token which text node it
came from and where in that node it sits. Both drop empty pieces and are
deterministic.
"""
from __future__ import annotations
import html
import re
from typing import Iterator, List, Tuple

from lxml import etree
from lxml import html as lxml_html

from .errors import ConfigurationError
from .types import Mode, SourceNode, Token, TokenSequence

FRAGMENT_TAG = "fragment"

# C0 controls other than tab, newline and carriage return, which lxml refuses.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def scrub_control_chars(text: str) -> str:
    """Replaces control characters that markup parsers reject with spaces."""
    return _CONTROL_RE.sub(" ", text)


def tokenize_text(text: str) -> TokenSequence:
    """Splits ``text`` on whitespace runs into tokens without source nodes."""
    return TokenSequence([Token(piece) for piece in text.split() if piece.strip()])


def _iter_text_nodes(el, tag: str = FRAGMENT_TAG) -> Iterator[Tuple[str, str]]:
    """Yields ``(tag, text)`` for each text node below ``el`` in document order."""
    if el.text:
        yield tag, el.text
    for child in el:
        if isinstance(child.tag, str):
            yield from _iter_text_nodes(child, str(child.tag).lower())
        if child.tail:
            yield tag, child.tail


def parse_fragment(markup: str):
    """Parses ``markup`` into an lxml element wrapping the whole fragment."""
    try:
        return lxml_html.fragment_fromstring(markup, create_parent="div")
    except etree.ParserError:
        return lxml_html.Element("div")


def tokenize_html(markup: str) -> TokenSequence:
    """
    Tokenizes a marked-up citation fragment.

    A space is inserted after every ``>`` before parsing so that text in
    adjacent elements never fuses into one token, even in malformed markup.
    Each text node is entity-decoded and split on whitespace; blank nodes are
    skipped and do not get an entry in the node table.

    Args:
        markup: The HTML citation fragment.

    Returns:
        A `TokenSequence` whose tokens carry an index into its node table,
        their position within their node and the node's token count.
    """
    if not markup.strip():
        return TokenSequence([])

    root = parse_fragment(scrub_control_chars(markup).replace(">", "> "))

    tokens: List[Token] = []
    nodes: List[SourceNode] = []
    for tag, text in _iter_text_nodes(root):
        decoded = html.unescape(text)
        if not decoded.strip():
            continue
        pieces = decoded.split()
        node = SourceNode(node_id=len(nodes), tag=tag)
        nodes.append(node)
        count = len(pieces)
        tokens.extend(Token(piece, node.node_id, i, count) for i, piece in enumerate(pieces))

    return TokenSequence(tokens, nodes)


def tokenize(text: str, mode: Mode) -> TokenSequence:
    """Tokenizes ``text`` with the tokenizer for ``mode``."""
    if mode == "html":
        return tokenize_html(text)
    if mode == "string":
        return tokenize_text(text)
    raise ConfigurationError(f"Unknown mode: {mode}")
