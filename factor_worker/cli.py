#!/usr/bin/env python3
"""
Factor worker entry point.

Reads composites (one per line) from stdin or --input, claims each one, runs
the configured engine tiers and reports found factors to the registry.
Several workers can share one lock directory; each composite is handled by
exactly one of them.
"""
import logging
import sys
from typing import List, Optional

from .arg_parser import create_worker_parser
from .errors import ConfigurationError, EngineNotFoundError
from .typed_config import TypedConfigLoader
from .worker import FactorWorker, setup_logging


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the factor worker."""
    parser = create_worker_parser()
    args = parser.parse_args(argv)

    try:
        config = TypedConfigLoader().load(args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.lock_dir:
        config.locks.directory = args.lock_dir

    logger = setup_logging(config, verbose=args.verbose)

    worker = FactorWorker(config, submit=not args.no_submit, max_items=args.max_items)
    worker.install_signal_handlers()

    try:
        if args.input:
            with open(args.input, 'r', encoding='utf-8') as stream:
                worker.run(stream)
        else:
            worker.run(sys.stdin)
    except EngineNotFoundError as e:
        logger.error(f"{e}; exiting")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 130
    finally:
        logging.shutdown()

    return 0


if __name__ == '__main__':
    sys.exit(main())
