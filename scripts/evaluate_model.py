"""Command-line script for evaluating a trained citation model.

Compares the model's labels against held-out tagged references and prints
token accuracy together with per-label precision, recall and F1. A CSV of
every disagreeing token can be written for error analysis.
"""
import argparse
import sys
from pathlib import Path

# Add project root to path to allow for package imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from citeparse.config import load_config
from citeparse.errors import CiteParseError
from citeparse.evaluate import evaluate
from citeparse.io_utils import read_tagged_references
from citeparse.parser import CitationParser


def main():
    """
    Main entry point for the command-line model evaluation script.

    Loads the configured model for the chosen mode, evaluates it on a tagged
    reference file and reports the comparison metrics.
    """
    parser = argparse.ArgumentParser(
        description="Evaluate citation labeling against held-out tagged references.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--reference", required=True, help="Held-out tagged reference file.")
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration YAML file.")
    parser.add_argument("--mode", choices=["string", "html"], default="string")
    parser.add_argument("--disagreements-out", help="Optional: Path to write a detailed disagreements CSV file.")
    args = parser.parse_args()

    try:
        print("Loading model...")
        cfg = load_config(args.config)
        citation_parser = CitationParser(cfg, mode=args.mode)
        references = read_tagged_references(args.reference)

        report = evaluate(citation_parser, references, show_progress=True)

        print("\n--- Comparison Metrics (vs. Reference) ---")
        print(f"Token accuracy: {report.accuracy:.2%}")
        print(report.per_label().to_string(float_format=lambda v: f"{v:.3f}"))

        if report.failures:
            print(f"\n{len(report.failures)} references could not be aligned:")
            for lineno, message in report.failures:
                print(f"  - line {lineno}: {message}")

        if args.disagreements_out:
            Path(args.disagreements_out).parent.mkdir(parents=True, exist_ok=True)
            disagreements = report.disagreements
            print(f"\nWriting {len(disagreements)} disagreements to {args.disagreements_out}...")
            disagreements.to_csv(args.disagreements_out, index=False)

    except (FileNotFoundError, ValueError, KeyError, CiteParseError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
