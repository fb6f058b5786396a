"""Aligns tag-annotated training references with their tokens.

A training reference is a single line in which each field is wrapped in an
element named after its label, for example::

    <author>Smith, J.</author> <date>(2001).</date> <title>A Study.</title>

`align_tagged_reference` walks the top-level pieces of such a line in order.
Each labeled element contributes one copy of its label per token in its text,
and plain text between elements contributes unlabeled markers. The decoded
pieces are joined into one buffer (each piece preceded by a newline) which is
tokenized as a whole; that final tokenization has to produce exactly as many
tokens as labels were collected, and the labels are then assigned by position.
"""
from __future__ import annotations
import html
import re
from typing import FrozenSet, List, Optional, Tuple

from lxml import etree

from .errors import AlignmentError, ConfigurationError
from .tokenizer import scrub_control_chars, tokenize
from .types import Mode, TokenSequence

Chunk = Tuple[str, Optional[str]]

_MARKER_RE = re.compile(r"<\s*(/?)\s*([A-Za-z][\w:.-]*)[^<>]*?(/?)\s*>")
_VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})
_RECOVER_PARSER = etree.XMLParser(recover=True)
_BARE_AMP_RE = re.compile(r"&(?!#?\w+;)")


def check_markers(line: str) -> None:
    """
    Checks that every open marker in ``line`` is closed by a marker of the same name.

    Raises:
        AlignmentError: Naming the opening and closing markers that do not match.
    """
    stack: List[str] = []
    for m in _MARKER_RE.finditer(line):
        closing, name, self_closing = m.group(1), m.group(2).lower(), m.group(3)
        if self_closing or name in _VOID_ELEMENTS:
            continue
        if not closing:
            stack.append(name)
            continue
        opened = stack.pop() if stack else None
        if opened != name:
            raise AlignmentError(
                f"Mismatched markers <{opened or '(none)'}> and </{name}> in line: {line}",
                line=line,
            )
    if stack:
        raise AlignmentError(
            f"Mismatched markers <{stack[-1]}> and </(none)>: marker never closed in line: {line}",
            line=line,
        )


def _inner_markup(el) -> str:
    inner = html.escape(el.text or "", quote=False)
    inner += "".join(etree.tostring(child, encoding="unicode", with_tail=True) for child in el)
    return html.unescape(inner)


def tagged_string_to_chunks(line: str) -> List[Chunk]:
    """
    Splits a tagged reference into ordered ``(text, label)`` chunks.

    Plain text between labeled elements yields chunks with a ``None`` label.
    The chunks cover the whole line with no gaps.
    """
    line = scrub_control_chars(line)
    check_markers(line)
    escaped = _BARE_AMP_RE.sub("&amp;", line)
    root = etree.fromstring(f"<string>{escaped}</string>", parser=_RECOVER_PARSER)
    if root is None:
        raise AlignmentError(f"Could not parse tagged reference: {line}", line=line)

    chunks: List[Chunk] = []
    if root.text:
        chunks.append((html.unescape(root.text), None))
    for el in root:
        if isinstance(el.tag, str):
            chunks.append((_inner_markup(el), str(el.tag)))
        if el.tail:
            chunks.append((html.unescape(el.tail), None))
    return chunks


def align_tagged_reference(line: str, mode: Mode, labels: FrozenSet[str]) -> TokenSequence:
    """
    Tokenizes a tagged reference and assigns each token its label.

    Args:
        line: One tagged reference line.
        mode: ``"string"`` or ``"html"``; selects the tokenizer.
        labels: The recognized label names for ``mode``.

    Returns:
        The token sequence of the whole reference with labels assigned.
        Tokens from plain text between labeled elements stay unlabeled.

    Raises:
        ConfigurationError: If the line uses a label not in ``labels``.
        AlignmentError: If markers are mismatched or the final tokenization
            does not yield one token per collected label.
    """
    token_labels: List[Optional[str]] = []
    buffer = ""
    for text, label in tagged_string_to_chunks(line.strip()):
        if label is not None and label not in labels:
            raise ConfigurationError(f"Invalid label '{label}' for:\n{line}")
        count = len(tokenize(text, mode))
        token_labels.extend([label] * count)
        buffer += f"\n{text}"

    tokens = tokenize(buffer.strip(), mode)
    if len(tokens) != len(token_labels):
        raise AlignmentError(
            f"{len(token_labels)} labels {token_labels} do not match "
            f"{len(tokens)} tokens {tokens.raws}",
            line=line,
        )

    for tok, label in zip(tokens, token_labels):
        if label is not None:
            tok.label = label
    return tokens
