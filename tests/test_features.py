from typing import List

import pytest

from citeparse.errors import AlignmentError, ConfigurationError
from citeparse.features import FeatureEngine, FeatureSpec, normalize_input_author
from citeparse.token_features import FEATURES, FeatureDef
from citeparse.tokenizer import tokenize_text


def _registry(calls: List[str]):
    def base(tokens, idx, author_names=None):
        calls.append("a_base")
        return tokens[idx].lcnp

    def dependent(tokens, idx, author_names=None):
        calls.append("b_dependent")
        return "dep:" + tokens[idx].computed["a_base"]

    def length(tokens, idx, author_names=None):
        calls.append("c_length")
        return str(len(tokens[idx].raw))

    return {
        "a_base": FeatureDef("a_base", base),
        "b_dependent": FeatureDef("b_dependent", dependent, depends_on=("a_base",)),
        "c_length": FeatureDef("c_length", length),
    }


def test_features_are_evaluated_in_name_order() -> None:
    calls: List[str] = []
    registry = _registry(calls)
    spec = FeatureSpec.from_order(["c_length", "b_dependent", "a_base"], registry)

    FeatureEngine(spec, registry).compute(tokenize_text("Smith"))

    assert calls == ["a_base", "b_dependent", "c_length"]


def test_vector_columns_follow_feature_order() -> None:
    registry = _registry([])
    spec = FeatureSpec.from_order(["c_length", "a_base"], registry)

    raws, vectors = FeatureEngine(spec, registry).compute(tokenize_text("Smith, J."))

    assert raws == ["Smith,", "J."]
    assert vectors == [["Smith,", "6", "smith"], ["J.", "2", "j"]]


def test_dependency_only_features_are_computed_but_not_emitted() -> None:
    registry = _registry([])
    spec = FeatureSpec.from_order(["b_dependent"], registry)

    assert spec.token_features == ("a_base", "b_dependent")
    _, vectors = FeatureEngine(spec, registry).compute(tokenize_text("Smith"))
    assert vectors == [["Smith", "dep:smith"]]


def test_dependency_that_sorts_after_its_reader_is_rejected() -> None:
    registry = {
        "a_reader": FeatureDef("a_reader", lambda t, i, a=None: "x", depends_on=("z_source",)),
        "z_source": FeatureDef("z_source", lambda t, i, a=None: "y"),
    }
    with pytest.raises(ConfigurationError, match="sorts after"):
        FeatureSpec.from_order(["a_reader"], registry)


def test_missing_dependency_is_rejected_by_validate() -> None:
    registry = _registry([])
    spec = FeatureSpec(feature_order=("b_dependent",), token_features=("b_dependent",))
    with pytest.raises(ConfigurationError, match="not evaluated"):
        spec.validate(registry)


@pytest.mark.parametrize("order", [[], ["a_base", "a_base"], ["nope"]])
def test_invalid_feature_orders_are_rejected(order) -> None:
    with pytest.raises(ConfigurationError):
        FeatureSpec.from_order(order, _registry([]))


def test_training_vectors_end_with_the_label() -> None:
    registry = _registry([])
    spec = FeatureSpec.from_order(["a_base"], registry)
    tokens = tokenize_text("Smith 2001")
    tokens[0].label = "author"
    tokens[1].label = "date"

    _, vectors = FeatureEngine(spec, registry).compute(tokens, training=True)

    assert vectors == [["Smith", "smith", "author"], ["2001", "2001", "date"]]


def test_training_requires_every_token_labeled() -> None:
    registry = _registry([])
    spec = FeatureSpec.from_order(["a_base"], registry)
    tokens = tokenize_text("Smith 2001")
    tokens[0].label = "author"

    with pytest.raises(AlignmentError, match="2001"):
        FeatureEngine(spec, registry).compute(tokens, training=True)


def test_values_with_whitespace_are_rejected() -> None:
    registry = {"a_bad": FeatureDef("a_bad", lambda t, i, a=None: "two words")}
    spec = FeatureSpec.from_order(["a_bad"], registry)
    with pytest.raises(ConfigurationError, match="a_bad"):
        FeatureEngine(spec, registry).compute(tokenize_text("Smith"))


def test_author_hint_reads_the_cached_token_value() -> None:
    spec = FeatureSpec.from_order(["toklcnp_is_author"])
    assert spec.token_features == ("toklcnp", "toklcnp_is_author")
    engine = FeatureEngine(spec)
    tokens = tokenize_text("Smith, J. Study")

    _, vectors = engine.compute(tokens, normalize_input_author("J. Smith"))
    assert [v[1] for v in vectors] == ["yes", "yes", "no"]

    _, vectors = engine.compute(tokenize_text("Smith"), None)
    assert vectors[0][1] == "noAuthorHint"


def test_default_features_produce_clean_values() -> None:
    spec = FeatureSpec.from_order(sorted(FEATURES))
    tokens = tokenize_text("Smith, J. (2001). In: Proc. (Eds.) \"Title\" pp. 45--67 May")
    _, vectors = FeatureEngine(spec).compute(tokens)
    assert len(vectors) == len(tokens)
    for vec in vectors:
        assert len(vec) == len(FEATURES) + 1
        assert all(value and " " not in value for value in vec)


def test_normalize_input_author() -> None:
    assert normalize_input_author(None) is None
    assert normalize_input_author("  ") is None
    assert normalize_input_author("McCallum, A.") == ["mccallum", "a"]
