import pytest

from citeparse.types import EMPTY, Token, TokenSequence, strip_punct


@pytest.mark.parametrize("text", ["Smith,", "(2001).", "...", "J.-P.", "über!", ""])
def test_strip_punct_is_idempotent(text: str) -> None:
    once = strip_punct(text)
    assert strip_punct(once) == once


def test_strip_punct_returns_sentinel_when_nothing_is_left() -> None:
    assert strip_punct("--,.") == EMPTY
    assert strip_punct("") == EMPTY


def test_lcnp_keeps_the_empty_sentinel() -> None:
    assert Token("Smith,").np == "Smith"
    assert Token("Smith,").lcnp == "smith"
    assert Token("--").lcnp == EMPTY


def test_label_can_only_be_set_once() -> None:
    tok = Token("Smith,")
    tok.label = "author"
    with pytest.raises(ValueError):
        tok.label = "title"
    assert tok.label == "author"


def test_part_of_speech_can_only_be_set_once() -> None:
    tok = Token("Smith,")
    tok.part_of_speech = "propn"
    with pytest.raises(ValueError):
        tok.part_of_speech = "noun"


def test_token_sequence_exposes_raws_and_labels() -> None:
    seq = TokenSequence([Token("A"), Token("B")])
    seq[0].label = "title"
    assert len(seq) == 2
    assert seq.raws == ["A", "B"]
    assert seq.labels == ["title", None]
    assert seq.node_of(seq[0]) is None
