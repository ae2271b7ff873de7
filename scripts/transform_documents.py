#!/usr/bin/env python3
"""
Batch affine transformation of NDJSON documents.

Reads one JSON document per line, applies an affine_transformation processor
configured from the command line and writes the processed documents as NDJSON.
Failing documents are reported on stderr and are not written.
"""

import argparse
import json
import sys
from contextlib import ExitStack
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from affine_search.core.document import IngestDocument
from affine_search.core.errors import AffineTransformationError
from affine_search.core.registry import create_ingest_processor
from util.logging import logger


def build_parser():
    parser = argparse.ArgumentParser(
        description="Apply an affine transformation to a vector field of NDJSON documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --field embedding --matrix-field matrix < docs.ndjson
  %(prog)s --field embedding --matrix-field matrix --target-field projected -i in.ndjson -o out.ndjson
  %(prog)s --field embedding --matrix-field matrix --ignore-missing

Exit status is 1 when any document failed, 2 for configuration or file errors.
        """
    )

    parser.add_argument(
        "--field", "-f",
        required=True,
        help="Dotted path of the vector field"
    )

    parser.add_argument(
        "--matrix-field", "-m",
        required=True,
        help="Dotted path of the transformation matrix field"
    )

    parser.add_argument(
        "--target-field", "-t",
        default=None,
        help="Dotted path to write the result to (default: --field)"
    )

    parser.add_argument(
        "--ignore-missing",
        action="store_true",
        help="Pass documents through unchanged when a field is missing"
    )

    parser.add_argument(
        "--tag",
        default=None,
        help="Processor tag used in error messages and logs"
    )

    parser.add_argument(
        "--input", "-i",
        default="-",
        help="Input NDJSON file (default: stdin)"
    )

    parser.add_argument(
        "--output", "-o",
        default="-",
        help="Output NDJSON file (default: stdout)"
    )

    return parser


def transform_lines(processor, lines, out, err):
    """Process NDJSON lines; returns (processed, failed) counts."""
    processed = 0
    failed = 0
    for line_no, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue

        try:
            source = json.loads(line)
        except json.JSONDecodeError as e:
            failed += 1
            print(f"ERROR: line {line_no}: invalid JSON: {e}", file=err)
            continue

        if not isinstance(source, dict):
            failed += 1
            print(f"ERROR: line {line_no}: document must be a JSON object", file=err)
            continue

        document = IngestDocument(source)
        try:
            processor.execute(document)
        except AffineTransformationError as e:
            failed += 1
            print(f"ERROR: line {line_no}: {type(e).__name__}: {e}", file=err)
            continue

        out.write(json.dumps(document.to_dict()) + "\n")
        processed += 1

    return processed, failed


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = {
        "field": args.field,
        "transformation_matrix_field": args.matrix_field,
        "ignore_missing": args.ignore_missing,
    }
    if args.target_field:
        config["target_field"] = args.target_field

    try:
        processor = create_ingest_processor("affine_transformation", config, tag=args.tag)
    except AffineTransformationError as e:
        print(f"ERROR: Invalid processor configuration: {e}", file=sys.stderr)
        return 2

    try:
        with ExitStack() as stack:
            src = sys.stdin if args.input == "-" else stack.enter_context(open(args.input, "r", encoding="utf-8"))
            dst = sys.stdout if args.output == "-" else stack.enter_context(open(args.output, "w", encoding="utf-8"))
            processed, failed = transform_lines(processor, src, dst, sys.stderr)
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    logger.log_operation("transform_documents", "failed" if failed else "success", {
        "processed": processed,
        "failed": failed,
    })
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
