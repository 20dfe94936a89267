#!/usr/bin/env python3
"""
Argument parsing for the factor worker.
"""
import argparse


def positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    try:
        result = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from e
    if result < 1:
        raise argparse.ArgumentTypeError(f"Value must be positive: {value}")
    return result


def create_worker_parser() -> argparse.ArgumentParser:
    """Create argument parser for the factor worker."""
    parser = argparse.ArgumentParser(
        description='Claim composites, factor them with external engines and report the factors'
    )

    parser.add_argument('--config', default='worker.yaml', help='Config file path')
    parser.add_argument('--input', '-i',
                        help='File or FIFO to read composites from, one per line (default: stdin)')
    parser.add_argument('--lock-dir', help='Override the work item lock directory')
    parser.add_argument('--max-items', type=positive_int,
                        help='Stop after processing this many composites (default: unlimited)')
    parser.add_argument('--no-submit', action='store_true',
                        help='Factor and log only; do not report factors to the registry')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    return parser
