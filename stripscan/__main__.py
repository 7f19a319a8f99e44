"""
Command-line entry point for StripScan.

Analyzes one strip image and prints the reading.

Usage:
    python -m stripscan strip.jpg
    python -m stripscan strip.jpg --json
    python -m stripscan strip.jpg --reference-csv data/CTG.csv --timeout 2
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from stripscan.analysis import StripAnalyzer
from stripscan.data.loader import ImageDecodeError
from stripscan.gateway import GatewaySettings, create_gateway

logger = logging.getLogger("stripscan")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stripscan",
        description="Estimate heart rate and rhythm from a photo of an ECG/CTG strip"
    )
    parser.add_argument(
        "image",
        type=str,
        help="Path to the strip image"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON"
    )
    parser.add_argument(
        "--reference-csv",
        type=str,
        default=None,
        help="Local reference CSV (overrides the environment)"
    )
    parser.add_argument(
        "--history-csv",
        type=str,
        default=None,
        help="Local history CSV (overrides the environment)"
    )
    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="User id whose history is blended into the estimate"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for reference data"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.timeout is not None and not args.timeout > 0:
        parser.error(f"--timeout must be positive, got {args.timeout}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    settings = GatewaySettings.from_env()
    overrides = {
        'reference_csv': args.reference_csv,
        'history_csv': args.history_csv,
        'user_id': args.user_id,
        'timeout_seconds': args.timeout,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    analyzer = StripAnalyzer(gateway=create_gateway(settings), timeout=settings.timeout_seconds)

    try:
        result = analyzer.analyze(args.image)
    except ImageDecodeError as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    else:
        print(f"Heart rate:  {result.heart_rate} bpm")
        print(f"Rhythm:      {result.rhythm_type}")
        print(f"Confidence:  {result.confidence:.0%}")
        if result.abnormalities:
            print("Findings:")
            for finding in result.abnormalities:
                print(f"  - {finding}")
        else:
            print("Findings:    none")
    return 0


if __name__ == "__main__":
    sys.exit(main())
