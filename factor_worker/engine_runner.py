#!/usr/bin/env python3
"""
Engine runner: execute one factoring engine against one composite.

The engine is a black box that prints factor markers. The runner builds its
command line from the engine's templates, streams the output, and applies the
engine's FactorExtractor followed by the shared filtering policy:

1. drop the final entry when the grammar reports the cofactor last
2. discard values longer than floor(len(n)/2) + digit_slack digits
3. deduplicate, keeping first-seen order

A nonzero exit status is not an error; it just yields no proof of primality.
"""
import datetime
import logging
import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import EngineNotFoundError
from .extractors import FactorExtractor, get_extractor
from .subprocess_utils import execute_subprocess
from .typed_config import EngineConfig

logger = logging.getLogger(__name__)

# Lines of output shown when an attempt fails
FAILURE_TAIL_LINES = 10


@dataclass
class EngineAttempt:
    """Result of one engine execution against one composite."""
    engine: str
    threads: int
    attempt: int
    started_at: datetime.datetime
    factors: List[str] = field(default_factory=list)
    proved_prime_cofactor: bool = False
    raw_output: str = ""
    returncode: Optional[int] = None
    execution_time: float = 0.0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.proved_prime_cofactor


def max_factor_digits(composite: str, digit_slack: int = 2) -> int:
    """Largest digit count a reported factor of ``composite`` may have."""
    return len(composite) // 2 + digit_slack


def filter_candidates(candidates: List[str], composite: str, digit_slack: int = 2,
                      drop_last: bool = True) -> List[str]:
    """
    Apply the cofactor, digit-bound and dedup rules to extracted values.

    Args:
        candidates: Values in output order, as returned by an extractor
        composite: The number being factored
        digit_slack: Digits allowed beyond half the composite's length
        drop_last: Drop the final entry (it is the residual cofactor)

    Returns:
        Ordered, deduplicated factor strings
    """
    if drop_last and candidates:
        candidates = candidates[:-1]

    limit = max_factor_digits(composite, digit_slack)
    factors: List[str] = []
    seen = set()

    for value in candidates:
        if len(value) > limit:
            logger.debug(f"Discarding {len(value)}-digit value {value} for {composite} (limit {limit})")
            continue
        if value in seen:
            continue
        seen.add(value)
        factors.append(value)

    return factors


class EngineRunner:
    """Run configured engines and parse their output into factors."""

    def __init__(self, engines: Dict[str, EngineConfig], digit_slack: int = 2,
                 output_dir: Optional[str] = None):
        """
        Args:
            engines: Engine configurations keyed by name
            digit_slack: Digits allowed beyond half the composite's length
            output_dir: If set, raw output of every attempt is saved there
        """
        self.engines = engines
        self.digit_slack = digit_slack
        self.output_dir = Path(output_dir) if output_dir else None
        self.logger = logging.getLogger(f"{__name__}.EngineRunner")
        self._resolved: Dict[str, str] = {}
        self._extractors: Dict[str, FactorExtractor] = {}

    def resolve_executable(self, engine_name: str) -> str:
        """
        Locate an engine's executable.

        Raises:
            EngineNotFoundError: If the executable is missing
        """
        if engine_name in self._resolved:
            return self._resolved[engine_name]

        engine = self.engines[engine_name]
        resolved = shutil.which(os.path.expanduser(engine.path))
        if resolved is None:
            raise EngineNotFoundError(engine_name, engine.path)

        self._resolved[engine_name] = os.path.abspath(resolved)
        return self._resolved[engine_name]

    def check_engines(self, names: List[str]) -> None:
        """Resolve every named engine up front so a missing one fails fast."""
        for name in names:
            path = self.resolve_executable(name)
            self.logger.debug(f"Engine {name}: {path}")

    def extractor_for(self, engine_name: str) -> FactorExtractor:
        if engine_name not in self._extractors:
            engine = self.engines[engine_name]
            self._extractors[engine_name] = get_extractor(
                engine.grammar,
                factor_label=engine.factor_label,
                proven_label=engine.proven_label,
            )
        return self._extractors[engine_name]

    def build_command(self, engine_name: str, composite: str,
                      threads: int) -> Tuple[List[str], Optional[str]]:
        """
        Expand an engine's argument and stdin templates.

        Returns:
            Tuple of (command list, stdin text or None)
        """
        engine = self.engines[engine_name]
        values = {'number': composite, 'threads': threads}
        cmd = [self.resolve_executable(engine_name)]
        cmd.extend(arg.format(**values) for arg in engine.args)
        stdin = engine.stdin.format(**values) if engine.stdin else None
        return cmd, stdin

    def run(self, composite: str, engine_name: str, threads: int,
            attempt: int = 1, timeout: Optional[float] = None) -> EngineAttempt:
        """
        Run one engine once against a composite.

        Args:
            composite: Decimal string to factor
            engine_name: Key into the engine configuration
            threads: Thread budget passed to the engine
            attempt: 1-based attempt index (for logging)
            timeout: Optional wall-clock limit in seconds

        Returns:
            EngineAttempt with parsed factors and the primality proof flag

        Raises:
            EngineNotFoundError: If the engine executable is missing
        """
        engine = self.engines[engine_name]
        cmd, stdin = self.build_command(engine_name, composite, threads)
        extractor = self.extractor_for(engine_name)

        started_at = datetime.datetime.now().astimezone()
        self.logger.info(
            f"Factoring {composite} with {engine_name} "
            f"({threads} thread(s), attempt {attempt})"
        )

        start = time.monotonic()
        try:
            result = execute_subprocess(
                cmd,
                input_text=stdin,
                timeout=timeout,
                cwd=engine.working_dir,
                log_prefix=engine_name
            )
        except FileNotFoundError as e:
            raise EngineNotFoundError(engine_name, cmd[0]) from e
        execution_time = time.monotonic() - start

        lines = result['output_lines']
        factors = filter_candidates(
            extractor.candidates(lines),
            composite,
            digit_slack=self.digit_slack,
            drop_last=extractor.reports_cofactor
        )
        proved = extractor.proves_prime_cofactor(lines)

        engine_attempt = EngineAttempt(
            engine=engine_name,
            threads=threads,
            attempt=attempt,
            started_at=started_at,
            factors=factors,
            proved_prime_cofactor=proved,
            raw_output=result['stdout'],
            returncode=result['returncode'],
            execution_time=execution_time,
            timed_out=result['timed_out'],
        )

        if proved:
            self.logger.info(
                f"Done factoring {composite} with {engine_name} after {execution_time:.1f}s "
                f"({len(factors)} factor(s))"
            )
        else:
            reason = "timed out" if result['timed_out'] else f"exit code {result['returncode']}"
            self.logger.warning(
                f"Failed to factor {composite} with {engine_name} after {execution_time:.1f}s "
                f"({reason}, {len(factors)} factor(s) parsed)"
            )
            tail = lines[-FAILURE_TAIL_LINES:]
            if tail:
                self.logger.warning(f"{engine_name} output tail:\n" + '\n'.join(tail))

        if self.output_dir:
            self._save_raw_output(engine_attempt, composite)

        return engine_attempt

    def _save_raw_output(self, engine_attempt: EngineAttempt, composite: str) -> None:
        stamp = engine_attempt.started_at.strftime("%Y%m%d_%H%M%S")
        name = f"{engine_attempt.engine}_{composite[:20]}_{stamp}_a{engine_attempt.attempt}.log"
        path = self.output_dir / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(engine_attempt.raw_output + '\n', encoding='utf-8')
        except OSError as e:
            self.logger.error(f"Failed to save raw output to {path}: {e}")
