from pathlib import Path

import pytest

from citeparse.config import config_from_dict, load_config
from citeparse.errors import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text.strip(), encoding="utf-8")
    return path


def test_shipped_config_loads(project_root: Path) -> None:
    cfg = load_config(str(project_root / "config.yaml"))

    string_mode = cfg.for_mode("string")
    assert string_mode.features.feature_order[0] == "toklcnp"
    assert list(string_mode.features.token_features) == sorted(string_mode.features.token_features)
    assert "author" in string_mode.labels
    assert string_mode.path("model") == project_root / "resources" / "model.crfsuite"
    assert "bullet" in cfg.for_mode("html").labels
    assert cfg.crf_params["c1"] == 0.1


def test_paths_resolve_relative_to_the_config_file(tmp_path: Path) -> None:
    path = _write(tmp_path, """
modes:
  string:
    feature_order: [toklcnp]
    labels: [author]
    paths:
      model: out/model.crfsuite
""")
    cfg = load_config(str(path))
    assert cfg.for_mode("string").path("model") == tmp_path.resolve() / "out" / "model.crfsuite"
    with pytest.raises(ConfigurationError, match="template"):
        cfg.for_mode("string").path("template")
    with pytest.raises(ConfigurationError, match="Unknown mode"):
        cfg.for_mode("html")


def test_crf_params_merge_with_defaults() -> None:
    cfg = config_from_dict({
        "crf": {"c2": 1.0},
        "modes": {"string": {"feature_order": ["toklcnp"], "labels": ["author"]}},
    })
    assert cfg.crf_params["c2"] == 1.0
    assert cfg.crf_params["max_iterations"] == 200


def test_declared_token_features_must_match_the_closure() -> None:
    section = {
        "feature_order": ["toklcnp_is_author"],
        "token_features": ["toklcnp_is_author"],
        "labels": ["author"],
    }
    with pytest.raises(ConfigurationError, match="requires"):
        config_from_dict({"modes": {"string": section}})

    section["token_features"] = ["toklcnp", "toklcnp_is_author"]
    cfg = config_from_dict({"modes": {"string": section}})
    assert cfg.for_mode("string").features.token_features == ("toklcnp", "toklcnp_is_author")


@pytest.mark.parametrize(
    "modes",
    [
        {},
        {"pdf": {"feature_order": ["toklcnp"], "labels": ["author"]}},
        {"string": {"labels": ["author"]}},
        {"string": {"feature_order": ["toklcnp"]}},
        {"string": {"feature_order": ["unknown_feature"], "labels": ["author"]}},
        {"string": {"feature_order": ["toklcnp"], "labels": ["author"], "paths": {"bogus": "x"}}},
    ],
)
def test_invalid_mode_sections_are_rejected(modes) -> None:
    with pytest.raises(ConfigurationError):
        config_from_dict({"modes": modes})


def test_load_config_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_load_config_rejects_non_dict_yaml(tmp_path: Path) -> None:
    path = _write(tmp_path, "- not a mapping")
    with pytest.raises(TypeError):
        load_config(str(path))


def test_load_config_reports_yaml_errors(tmp_path: Path) -> None:
    path = _write(tmp_path, "modes: [unclosed")
    with pytest.raises(ValueError):
        load_config(str(path))
