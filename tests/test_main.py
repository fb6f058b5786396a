"""Smoke tests for the command-line entry points.

A small configuration pointing at the shipped sample corpus is written to a
temporary directory, with POS tagging disabled so no spaCy model is needed.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

import main as main_module
from scripts import evaluate_model, train_model


@pytest.fixture(autouse=True)
def restore_argv():
    original = sys.argv[:]
    try:
        yield
    finally:
        sys.argv = original


@pytest.fixture
def cli_config(tmp_path: Path, project_root: Path) -> Path:
    features = "\n".join(
        f"      - {name}"
        for name in [
            "toklcnp", "first_1_char", "first_2_chars", "first_3_chars", "first_4_chars",
            "last_1_char", "last_2_chars", "last_3_chars", "last_4_chars", "capitalization",
            "numbers", "punct", "name_initial", "is_month", "location", "possible_editor",
            "possible_chapter", "toklcnp_is_author", "part_of_speech",
        ]
    )
    config = tmp_path / "config.yaml"
    config.write_text(
        f"""
pos_tagger:
  enable: false
crf:
  max_iterations: 50
modes:
  string:
    feature_order:
{features}
    labels: [author, title, editor, booktitle, date, journal, volume, institution,
             pages, location, publisher, note, tech]
    paths:
      model: model.crfsuite
      template: {project_root / "resources" / "parscit.template"}
      tagged_references: {project_root / "trainingdata" / "tagged_references.txt"}
      training_data: training_data.txt
""".lstrip(),
        encoding="utf-8",
    )
    return config


def test_main_requires_input_arguments():
    """Invoking ``main.main`` without the mandatory flags exits gracefully."""
    sys.argv = ["main"]
    with pytest.raises(SystemExit):
        main_module.main()


def test_main_reports_missing_config(tmp_path: Path, capsys):
    sys.argv = ["main", "--text", "Smith, J.", "--config", str(tmp_path / "missing.yaml")]
    with pytest.raises(SystemExit) as excinfo:
        main_module.main()
    assert excinfo.value.code == 1
    assert "Configuration file not found" in capsys.readouterr().err


def test_main_reports_missing_model(cli_config: Path, capsys):
    sys.argv = ["main", "--text", "Smith, J.", "--config", str(cli_config)]
    with pytest.raises(SystemExit) as excinfo:
        main_module.main()
    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_train_then_parse_from_the_command_line(cli_config: Path, tmp_path: Path, capsys):
    sys.argv = ["train_model", "--config", str(cli_config)]
    train_model.main()
    assert (tmp_path / "model.crfsuite").exists()
    assert (tmp_path / "training_data.txt").exists()
    capsys.readouterr()

    sys.argv = ["main", "--text", "Smith, J. (2001). A Study of Things.", "--config", str(cli_config)]
    main_module.main()
    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])["record"]
    assert record["raw_string"] == "Smith, J. (2001). A Study of Things."

    citations = tmp_path / "citations.txt"
    citations.write_text("Smith, J. (2001).\n\nLee, K. Learning to label references.\n", encoding="utf-8")
    out = tmp_path / "results.json"
    sys.argv = ["main", "--input", str(citations), "--config", str(cli_config), "--output", str(out)]
    main_module.main()
    assert len(json.loads(out.read_text(encoding="utf-8"))["results"]) == 2

    disagreements = tmp_path / "disagreements.csv"
    sys.argv = [
        "evaluate_model",
        "--reference", str(Path(__file__).resolve().parents[1] / "trainingdata" / "tagged_references.txt"),
        "--config", str(cli_config),
        "--disagreements-out", str(disagreements),
    ]
    evaluate_model.main()
    assert "Token accuracy" in capsys.readouterr().out
    assert disagreements.exists()


def test_train_model_features_only_reports_skipped_lines(cli_config: Path, tmp_path: Path, capsys):
    corpus = tmp_path / "refs.txt"
    corpus.write_text(
        "<author>Smith, J.</author> <title>Things.</title>\n<author>Smith</title>\n",
        encoding="utf-8",
    )
    sys.argv = [
        "train_model", "--config", str(cli_config), "--tagged-refs", str(corpus),
        "--features-only", "--skip-bad-lines",
    ]
    train_model.main()
    out = capsys.readouterr().out
    assert "Wrote 1 sequences" in out
    assert "skipped line 2" in out


def test_train_model_exits_on_alignment_error(cli_config: Path, tmp_path: Path, capsys):
    corpus = tmp_path / "refs.txt"
    corpus.write_text("<author>Smith</title>\n", encoding="utf-8")
    sys.argv = ["train_model", "--config", str(cli_config), "--tagged-refs", str(corpus)]
    with pytest.raises(SystemExit) as excinfo:
        train_model.main()
    assert excinfo.value.code == 1
    assert "line 1" in capsys.readouterr().err
