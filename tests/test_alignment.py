import pytest

from citeparse.alignment import align_tagged_reference, check_markers, tagged_string_to_chunks
from citeparse.errors import AlignmentError, ConfigurationError

LABELS = frozenset({"author", "date", "title", "journal", "volume", "pages"})
HTML_LABELS = LABELS | {"bullet", "link"}

LINE = (
    "<author>Smith, J.</author> <date>(2001).</date> <title>A Study of Things.</title> "
    "<journal>Journal of Examples,</journal> <volume>12(3),</volume> <pages>45-67.</pages>"
)


def test_every_token_gets_the_label_of_its_element() -> None:
    tokens = align_tagged_reference(LINE, "string", LABELS)

    assert len(tokens) == len(tokens.labels)
    assert tokens.raws[:3] == ["Smith,", "J.", "(2001)."]
    assert tokens.labels[:3] == ["author", "author", "date"]
    assert tokens.labels[-1] == "pages"
    assert tokens.labels.count("title") == 4


def test_chunks_cover_the_line_in_order() -> None:
    chunks = tagged_string_to_chunks("<author>Smith</author> and <title>T</title>")
    assert chunks == [("Smith", "author"), (" and ", None), ("T", "title")]


def test_plain_text_between_elements_stays_unlabeled() -> None:
    tokens = align_tagged_reference("<author>Smith</author> see <title>T</title>", "string", LABELS)
    assert tokens.labels == ["author", None, "title"]


def test_bare_ampersand_survives_alignment() -> None:
    tokens = align_tagged_reference("<author>Smith & Jones</author>", "string", LABELS)
    assert tokens.raws == ["Smith", "&", "Jones"]
    assert tokens.labels == ["author"] * 3


def test_mismatched_close_names_both_markers() -> None:
    with pytest.raises(AlignmentError) as excinfo:
        align_tagged_reference("<author>Smith</title>", "string", LABELS)
    message = str(excinfo.value)
    assert "<author>" in message and "</title>" in message
    assert excinfo.value.line == "<author>Smith</title>"


def test_unclosed_marker_is_reported() -> None:
    with pytest.raises(AlignmentError, match="never closed"):
        check_markers("<author>Smith")


def test_unknown_label_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Invalid label 'publisher'"):
        align_tagged_reference("<publisher>ACM</publisher>", "string", LABELS)


def test_html_reference_keeps_inner_markup() -> None:
    line = (
        "<bullet>[1]</bullet> <author>Smith, J.</author> "
        "<journal>&lt;i&gt;Journal of Examples&lt;/i&gt;,</journal> "
        "<link>&lt;a href=\"http://example.org/pdf\"&gt;PDF&lt;/a&gt;</link>"
    )

    tokens = align_tagged_reference(line, "html", HTML_LABELS)

    assert tokens.raws == ["[1]", "Smith,", "J.", "Journal", "of", "Examples", ",", "PDF"]
    assert tokens.labels == ["bullet", "author", "author", "journal", "journal", "journal", "journal", "link"]
    assert tokens.node_of(tokens[3]).tag == "i"
    assert tokens.node_of(tokens[7]).tag == "a"


def test_token_count_mismatch_reports_both_counts() -> None:
    line = "<author>A &lt;!--</author> <title>B --&gt; C</title>"

    with pytest.raises(AlignmentError) as excinfo:
        align_tagged_reference(line, "html", HTML_LABELS)

    message = str(excinfo.value)
    assert "4 labels" in message
    assert "2 tokens" in message
    assert excinfo.value.line == line


def test_control_characters_in_tagged_lines_are_treated_as_spaces() -> None:
    tokens = align_tagged_reference("<author>Smith,\x0cJ.</author>", "html", HTML_LABELS)
    assert tokens.raws == ["Smith,", "J."]
    assert tokens.labels == ["author", "author"]
