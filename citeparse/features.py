"""Feature extraction orchestration.

This module turns a token sequence into the ordered feature vectors consumed by
the sequence-labeling model. It defines two pieces:

1.  **FeatureSpec**: The validated pair of ``feature_order`` (the emitted
    column order) and ``token_features`` (every feature that is evaluated,
    sorted by name). ``token_features`` is the closure of ``feature_order``
    over declared dependencies, so dependency-only features are computed but
    never emitted.
2.  **FeatureEngine**: Evaluates ``token_features`` for each token in
    lexicographic name order, storing each value in the token's ``computed``
    cache so that later-named features can read it, and assembles vectors of
    the form ``[raw, *values in feature_order, (label)]``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

from .errors import AlignmentError, ConfigurationError
from .token_features import FEATURES, FeatureDef
from .types import FeatureVector, TokenSequence, strip_punct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureSpec:
    """
    The validated feature configuration for one parsing mode.

    Attributes:
        feature_order: Feature names in the order their values are emitted.
        token_features: All features to evaluate, sorted lexicographically.
    """
    feature_order: Tuple[str, ...]
    token_features: Tuple[str, ...]

    @classmethod
    def from_order(
        cls,
        feature_order: Iterable[str],
        registry: Mapping[str, FeatureDef] = FEATURES,
    ) -> "FeatureSpec":
        """
        Builds a spec from an emitted column order, adding declared dependencies.

        Raises:
            ConfigurationError: If the order is empty or repeats a name, a
                feature (or dependency) is not registered, or a dependency does
                not sort before the feature that reads it.
        """
        order = tuple(str(f) for f in feature_order)
        if not order:
            raise ConfigurationError("feature_order must name at least one feature")
        duplicates = sorted({f for f in order if order.count(f) > 1})
        if duplicates:
            raise ConfigurationError(f"feature_order repeats features: {duplicates}")

        needed: set[str] = set()
        pending = list(order)
        while pending:
            name = pending.pop()
            if name in needed:
                continue
            if name not in registry:
                raise ConfigurationError(f"Unknown feature '{name}'")
            needed.add(name)
            pending.extend(registry[name].depends_on)

        spec = cls(feature_order=order, token_features=tuple(sorted(needed)))
        spec.validate(registry)
        return spec

    def validate(self, registry: Mapping[str, FeatureDef] = FEATURES) -> None:
        """
        Checks that every dependency is evaluated, and evaluated first.

        Raises:
            ConfigurationError: On the first unmet dependency found.
        """
        if list(self.token_features) != sorted(set(self.token_features)):
            raise ConfigurationError("token_features must be sorted and unique")
        evaluated = set(self.token_features)
        for name in self.feature_order:
            if name not in evaluated:
                raise ConfigurationError(
                    f"Feature '{name}' is in feature_order but not in token_features"
                )
        for name in self.token_features:
            if name not in registry:
                raise ConfigurationError(f"Unknown feature '{name}'")
            for dep in registry[name].depends_on:
                if dep not in evaluated:
                    raise ConfigurationError(
                        f"Feature '{name}' depends on '{dep}', which is not evaluated"
                    )
                if dep >= name:
                    raise ConfigurationError(
                        f"Feature '{name}' depends on '{dep}', which sorts after it "
                        "and would not be computed yet"
                    )


def normalize_input_author(presumed_author: Optional[str]) -> Optional[List[str]]:
    """Splits a presumed author string into lower-cased, punctuation-free names."""
    if presumed_author is None or not presumed_author.strip():
        return None
    return [strip_punct(part.lower()) for part in presumed_author.split()]


class FeatureEngine:
    """
    Computes per-token feature vectors according to a ``FeatureSpec``.

    Attributes:
        spec: The validated feature configuration.
        registry: The feature functions available by name.
    """

    def __init__(self, spec: FeatureSpec, registry: Mapping[str, FeatureDef] = FEATURES):
        spec.validate(registry)
        self.spec = spec
        self.registry = registry

    def compute(
        self,
        tokens: TokenSequence,
        author_names: Optional[List[str]] = None,
        training: bool = False,
    ) -> Tuple[List[str], List[FeatureVector]]:
        """
        Computes the feature vectors of a token sequence.

        Args:
            tokens: The tokens of one citation.
            author_names: Normalized presumed-author names used as a hint.
            training: When true, every token must carry a label, which is
                appended as the final column.

        Returns:
            A tuple of the raw token texts and the index-aligned feature vectors.

        Raises:
            AlignmentError: If ``training`` is set and a token is unlabeled.
            ConfigurationError: If a feature function returns an empty value
                or one containing whitespace.
        """
        vectors: List[FeatureVector] = []
        for idx, tok in enumerate(tokens):
            if training and tok.label is None:
                raise AlignmentError(
                    f"All tokens must be labeled; token {idx} '{tok.raw}' has no label "
                    f"in {tokens.raws}"
                )

            tok.computed.clear()
            for name in self.spec.token_features:
                value = self.registry[name].fn(tokens, idx, author_names)
                if not value or any(ch.isspace() for ch in value):
                    raise ConfigurationError(
                        f"Feature '{name}' produced invalid value {value!r} for "
                        f"token {idx} '{tok.raw}'"
                    )
                tok.computed[name] = value

            vec = [tok.raw]
            vec.extend(tok.computed[name] for name in self.spec.feature_order)
            if training:
                vec.append(tok.label)
            vectors.append(vec)

        logger.debug("Computed %d feature vectors", len(vectors))
        return tokens.raws, vectors
