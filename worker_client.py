#!/usr/bin/env python3
"""
Factor Worker - claim composites and report their factors

Run from a checkout without installing:

    mkfifo composites
    python3 worker_client.py --input composites

Several copies may run side by side (or on hosts sharing the lock directory);
each composite is factored by only one of them.
"""

import sys

from factor_worker.cli import main


if __name__ == '__main__':
    sys.exit(main())
