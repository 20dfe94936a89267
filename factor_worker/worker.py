#!/usr/bin/env python3
"""
Worker assembly: configuration, logging, signal handling and component wiring.
"""
import logging
import signal
from pathlib import Path
from typing import Iterable, List, Optional

from .batch import BatchDriver, BatchStats
from .engine_runner import EngineRunner
from .fallback import FallbackController
from .journal import failure_journal, success_journal
from .locking import LockManager, SubmissionGate
from .registry_client import RegistryClient
from .submission import ResponseTokens, SubmissionPipeline
from .typed_config import AppConfig, TypedConfigLoader


def setup_logging(config: AppConfig, verbose: bool = False) -> logging.Logger:
    """Log to the configured file and to the console."""
    log_file = Path(config.logging.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    return logging.getLogger(__name__)


class FactorWorker:
    """Build the pipeline from an AppConfig and run it over an input stream."""

    def __init__(self, config: AppConfig, submit: bool = True,
                 max_items: Optional[int] = None):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.FactorWorker")
        self.interrupted = False

        self.runner = EngineRunner(
            config.engines,
            digit_slack=config.execution.digit_slack,
            output_dir=config.execution.output_dir if config.execution.save_raw_output else None
        )
        self.controller = FallbackController(self.runner, config.tiers)
        self.locks = LockManager(config.locks.directory)
        self.pipeline = self._build_pipeline() if submit else None
        self.driver = BatchDriver(self.locks, self.controller, self.pipeline, max_items=max_items)

    @classmethod
    def from_config_file(cls, config_path: str, **kwargs) -> 'FactorWorker':
        return cls(TypedConfigLoader().load(config_path), **kwargs)

    def _build_pipeline(self) -> SubmissionPipeline:
        registry = self.config.registry
        client = RegistryClient(
            url=registry.url,
            timeout=registry.timeout,
            retry_count=registry.retry_count,
            retry_delay=registry.retry_delay
        )
        gate = SubmissionGate(
            max_concurrent=registry.max_concurrent_submissions,
            slot_dir=registry.gate_dir
        )
        tokens = ResponseTokens(
            submitted=registry.submitted_token,
            already_known=registry.already_known_token,
            does_not_divide=registry.does_not_divide_token,
            error=registry.error_token
        )
        return SubmissionPipeline(
            client,
            gate,
            success_journal(self.config.journals.success_file),
            failure_journal(self.config.journals.failure_file),
            tokens=tokens
        )

    def tier_engines(self) -> List[str]:
        return list(dict.fromkeys(tier.engine for tier in self.config.tiers))

    def _signal_handler(self, signum, frame):
        if self.interrupted:
            # Second signal: stop immediately
            raise KeyboardInterrupt
        self.interrupted = True
        self.logger.info(
            f"Received {signal.Signals(signum).name}, finishing current item "
            f"(send again to stop immediately)"
        )
        self.driver.request_stop()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def run(self, lines: Iterable[str]) -> BatchStats:
        """
        Check engines, then process the input stream.

        Raises:
            EngineNotFoundError: If a tier's engine executable is missing
        """
        self.config.ensure_dirs_exist()
        self.runner.check_engines(self.tier_engines())
        self.logger.info(
            "Tiers: " + ", ".join(
                f"{tier.engine} x{tier.attempts} ({tier.threads} thread(s))"
                for tier in self.config.tiers
            )
        )
        return self.driver.run(lines)
