"""The citation parser facade.

`CitationParser` wires the pipeline stages together for one mode:

*   **Inference** (`parse`): normalize (string mode only) → tokenize → tag
    parts of speech → compute feature vectors → label with the model adapter
    → regroup into a `LabeledRecord`.
*   **Training data** (`write_training_file`): align each tagged reference →
    tag parts of speech → compute feature vectors with the label column →
    append one blank-line separated group per reference.
*   **Training** (`train`): write the training data when needed, then train a
    CRFsuite model with the mode's template.

A parser owns its model adapter, which is stateful and labels one sequence at
a time, so a single parser must not be shared between threads. Create one
parser per worker instead; the `Config` itself is read-only and can be shared.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from .alignment import align_tagged_reference
from .config import Config, ModeConfig
from .errors import AlignmentError
from .features import FeatureEngine, normalize_input_author
from .io_utils import iter_training_data, read_tagged_references, write_sequence
from .model import CrfSuiteAdapter, CrfTemplate, ModelAdapter, train_crf
from .normalize import normalize_cite_text, normalize_fields
from .pos import PosTagger, add_parts_of_speech, build_pos_tagger
from .results import FieldNormalizer, ParseResult, assemble, read_adapter_results
from .tokenizer import tokenize
from .types import FeatureVector, Mode, TokenSequence

logger = logging.getLogger(__name__)


@dataclass
class TrainingFileReport:
    """Outcome of writing a training data file."""
    path: Path
    written: int = 0
    failures: List[Tuple[int, str]] = field(default_factory=list)


class CitationParser:
    """
    Parses citation strings and generates training data for one mode.

    Args:
        config: The loaded parser configuration.
        mode: ``"string"`` for plain citations, ``"html"`` for marked-up ones.
        adapter: The model adapter to label with. When omitted, a
            `CrfSuiteAdapter` is built on first use from the mode's configured
            model and template paths.
        pos_tagger: The part-of-speech tagger; built from the config's
            ``pos_tagger`` section when omitted.
        text_normalizer: Applied to plain citations before tokenization.
        field_normalizer: Applied once to the grouped fields of each parse.
    """

    def __init__(
        self,
        config: Config,
        mode: Mode = "string",
        adapter: Optional[ModelAdapter] = None,
        pos_tagger: Optional[PosTagger] = None,
        text_normalizer: Callable[[str], str] = normalize_cite_text,
        field_normalizer: FieldNormalizer = normalize_fields,
    ):
        self.config = config
        self.mode = mode
        self.mode_config: ModeConfig = config.for_mode(mode)
        self.engine = FeatureEngine(self.mode_config.features)
        self.pos_tagger = pos_tagger if pos_tagger is not None else build_pos_tagger(dict(config.pos_tagger))
        self.text_normalizer = text_normalizer
        self.field_normalizer = field_normalizer
        self._adapter = adapter

    @property
    def feature_order(self) -> Tuple[str, ...]:
        return self.mode_config.features.feature_order

    @property
    def token_features(self) -> Tuple[str, ...]:
        return self.mode_config.features.token_features

    @property
    def adapter(self) -> ModelAdapter:
        if self._adapter is None:
            template = CrfTemplate.load(self.mode_config.path("template"))
            self._adapter = CrfSuiteAdapter(self.mode_config.path("model"), template)
        return self._adapter

    # --- Token preparation ---

    def prepare_token_data(self, text: str, training: bool = False) -> TokenSequence:
        """
        Tokenizes a citation (or aligns a tagged reference) and tags parts of speech.

        Args:
            text: The citation, or a tagged reference line when ``training``.
            training: Whether ``text`` is a tagged reference to align.
        """
        if training:
            tokens = align_tagged_reference(text, self.mode, self.mode_config.labels)
        else:
            tokens = tokenize(text.strip(), self.mode)
        add_parts_of_speech(tokens, self.pos_tagger)
        return tokens

    def str_to_features(
        self,
        text: str,
        training: bool = False,
        presumed_author: Optional[str] = None,
    ) -> Tuple[List[str], List[FeatureVector]]:
        """Computes the raw tokens and feature vectors of a citation."""
        tokens = self.prepare_token_data(text, training)
        author_names = normalize_input_author(presumed_author)
        return self.engine.compute(tokens, author_names, training=training)

    # --- Inference ---

    def eval_model(self, vectors: Sequence[FeatureVector]):
        """
        Labels a sequence of feature vectors with the model adapter.

        Returns:
            The labels, the whole-sequence probability and the per-label
            product of per-position confidences.
        """
        adapter = self.adapter
        adapter.reset()
        for vec in vectors:
            adapter.add_vector(vec)
        adapter.run()
        return read_adapter_results(adapter, len(vectors))

    def parse(self, text: str, presumed_author: Optional[str] = None) -> ParseResult:
        """
        Parses one citation into labeled fields.

        Args:
            text: The citation string (plain text or HTML, per the mode).
            presumed_author: Optional author string used as a feature hint.

        Returns:
            A `ParseResult` holding the record (with ``raw_string`` set to the
            untouched input) and the model's probabilities.

        Raises:
            AdapterError: If the model rejects a vector or inference fails.
        """
        raw_string = text
        if self.mode == "string":
            text = self.text_normalizer(text)

        toks, vectors = self.str_to_features(text, False, presumed_author)
        labels, overall_prob, label_probs = self.eval_model(vectors)
        record = assemble(raw_string, toks, labels, self.field_normalizer)
        return ParseResult(
            record=record,
            sequence_probability=overall_prob,
            label_probabilities=label_probs,
            tokens=tuple(toks),
            labels=tuple(labels),
        )

    # --- Training ---

    def training_vectors(self, line: str) -> List[FeatureVector]:
        """Aligns one tagged reference and returns its labeled feature vectors."""
        _, vectors = self.str_to_features(line.strip(), training=True)
        return vectors

    def write_training_file(
        self,
        tagged_refs: Optional[Path | str] = None,
        training_data: Optional[Path | str] = None,
        on_error: str = "raise",
        show_progress: bool = False,
    ) -> TrainingFileReport:
        """
        Converts a tagged reference corpus into a flat training data file.

        Each reference is fully featurized before anything is written, so a
        line that fails to align contributes nothing and earlier lines are kept.

        Args:
            tagged_refs: Corpus path; defaults to the mode's configured corpus.
            training_data: Output path; defaults to the mode's configured path.
            on_error: ``"raise"`` to stop at the first misaligned line (after
                flushing what was written), ``"skip"`` to record it and go on.
            show_progress: Display a tqdm progress bar.

        Raises:
            AlignmentError: With ``line_number`` set, when ``on_error="raise"``.
            ConfigurationError: If a reference uses an unrecognized label.
        """
        if on_error not in ("raise", "skip"):
            raise ValueError(f"on_error must be 'raise' or 'skip', got {on_error!r}")
        tagged_refs = Path(tagged_refs) if tagged_refs else self.mode_config.path("tagged_references")
        training_data = Path(training_data) if training_data else self.mode_config.path("training_data")

        lines = read_tagged_references(tagged_refs)
        report = TrainingFileReport(path=training_data)
        training_data.parent.mkdir(parents=True, exist_ok=True)

        with open(training_data, "w", encoding="utf-8") as fout:
            for lineno, line in tqdm(lines, desc="Featurizing references", disable=not show_progress):
                try:
                    vectors = self.training_vectors(line)
                except AlignmentError as e:
                    e.line_number = lineno
                    e.line = line
                    if on_error == "raise":
                        raise
                    logger.warning("Skipping %s:%d: %s", tagged_refs, lineno, e)
                    report.failures.append((lineno, str(e)))
                    continue
                write_sequence(fout, vectors)
                report.written += 1

        logger.info(
            "Wrote %d sequences to %s (%d skipped)",
            report.written, training_data, len(report.failures),
        )
        return report

    def train(
        self,
        tagged_refs: Optional[Path | str] = None,
        model: Optional[Path | str] = None,
        template: Optional[Path | str] = None,
        training_data: Optional[Path | str] = None,
        on_error: str = "raise",
        show_progress: bool = False,
    ) -> dict:
        """
        Trains the mode's CRF model.

        When ``training_data`` is not given, the mode's configured training
        data path is (re)generated from ``tagged_refs`` first. Unless the
        parser was given a custom adapter, it labels with the new model from
        then on.

        Returns:
            The training summary from `train_crf`.
        """
        model = Path(model) if model else self.mode_config.path("model")
        template_path = Path(template) if template else self.mode_config.path("template")

        if training_data is None:
            report = self.write_training_file(
                tagged_refs, on_error=on_error, show_progress=show_progress
            )
            training_data = report.path

        crf_template = CrfTemplate.load(template_path)
        summary = train_crf(
            crf_template,
            iter_training_data(training_data),
            model,
            params=self.config.crf_params,
        )
        if self._adapter is None or isinstance(self._adapter, CrfSuiteAdapter):
            self._adapter = CrfSuiteAdapter(model, crf_template)
        return summary
