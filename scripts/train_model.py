import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from citeparse.config import load_config
from citeparse.errors import AlignmentError, CiteParseError
from citeparse.parser import CitationParser


def main():
    """
    Main entry point for the command-line model training script.

    This script orchestrates the CRF training process:
    1.  Loads the configuration and selects the mode.
    2.  Converts the tagged reference corpus into a flat training data file
        (one blank-line separated group of feature lines per reference),
        unless `--training-data` points at an existing one.
    3.  Trains a CRFsuite model with the mode's feature template and saves it.
    """
    parser = argparse.ArgumentParser(
        description="Train the citation CRF model from tagged references.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration YAML file.")
    parser.add_argument("--mode", choices=["string", "html"], default="string", help="Which model to train.")
    parser.add_argument("--tagged-refs", help="Tagged reference corpus. Defaults to the configured corpus.")
    parser.add_argument("--model", help="Output path for the model. Defaults to the configured model path.")
    parser.add_argument("--template", help="CRF++ style feature template. Defaults to the configured template.")
    parser.add_argument("--training-data", help="Use an existing training data file instead of generating one.")
    parser.add_argument("--skip-bad-lines", action="store_true", help="Skip references that fail to align instead of aborting.")
    parser.add_argument("--features-only", action="store_true", help="Only write the training data file; do not train.")
    args = parser.parse_args()

    try:
        cfg = load_config(args.config)
        citation_parser = CitationParser(cfg, mode=args.mode)
        on_error = "skip" if args.skip_bad_lines else "raise"

        if args.features_only:
            report = citation_parser.write_training_file(
                args.tagged_refs, args.training_data, on_error=on_error, show_progress=True
            )
            print(f"\nWrote {report.written} sequences to {report.path}")
            for lineno, message in report.failures:
                print(f"  - skipped line {lineno}: {message}")
            return

        print("\n--- Training CRF model ---")
        summary = citation_parser.train(
            tagged_refs=args.tagged_refs,
            model=args.model,
            template=args.template,
            training_data=args.training_data,
            on_error=on_error,
            show_progress=True,
        )
        print(json.dumps(summary, indent=2))
        print(f"Successfully saved model to {summary['model_path']}")

    except AlignmentError as e:
        where = f" (line {e.line_number})" if e.line_number else ""
        print(f"\n[ERROR] Alignment failed{where}: {e}", file=sys.stderr)
        sys.exit(1)
    except (FileNotFoundError, ValueError, TypeError, CiteParseError) as e:
        print(f"\n[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
