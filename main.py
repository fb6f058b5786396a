import argparse
import json
import sys
from pathlib import Path

# Add project root to path for robust execution
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from citeparse.config import load_config
from citeparse.errors import CiteParseError
from citeparse.io_utils import save_results
from citeparse.parser import CitationParser


def main():
    """
    Main command-line interface for the citation parser.

    This script parses citations with a trained model. It performs the
    following steps:
    1.  Loads the configuration file (`config.yaml`), which names the model
        and template for the chosen mode.
    2.  Reads citations from `--text` or from `--input` (one per line).
    3.  Parses each citation into labeled fields.
    4.  Prints the records as JSON, or writes them to `--output`.
    """
    parser = argparse.ArgumentParser(
        description="Parse bibliographic citations into labeled fields.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input",
        help="Path to a text file with one citation per line."
    )
    source.add_argument(
        "--text",
        help="A single citation string to parse."
    )
    parser.add_argument(
        "--output",
        help="Path to write the parsed records as JSON. Prints to stdout when omitted."
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the configuration YAML file."
    )
    parser.add_argument(
        "--mode",
        choices=["string", "html"],
        default="string",
        help="Parse plain-text citations or HTML-marked-up citations."
    )
    parser.add_argument(
        "--author",
        help="Presumed author of the citations, used as a parsing hint."
    )
    args = parser.parse_args()

    try:
        cfg = load_config(args.config)
        citation_parser = CitationParser(cfg, mode=args.mode)

        if args.text is not None:
            citations = [args.text]
        else:
            print(f"Loading citations from {args.input}...", file=sys.stderr)
            with open(args.input, "r", encoding="utf-8") as f:
                citations = [line.rstrip("\n") for line in f if line.strip()]

        results = [citation_parser.parse(c, presumed_author=args.author) for c in citations]

        if args.output:
            save_results(args.output, results)
            print(f"Successfully wrote {len(results)} records to {args.output}", file=sys.stderr)
        else:
            for r in results:
                print(json.dumps(r.to_dict(), ensure_ascii=False))

    except (FileNotFoundError, ValueError, TypeError, KeyError, CiteParseError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
