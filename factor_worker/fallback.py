"""
Tiered engine fallback for one composite.

Tiers run in order. Inside a tier the same engine is retried up to its attempt
budget; the first attempt that proves the cofactor prime ends the whole
sequence. Factors from every attempt are merged (first-seen order) and returned
even when no tier succeeds.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .engine_runner import EngineAttempt, EngineRunner
from .typed_config import TierConfig


@dataclass
class FallbackResult:
    """Factors accumulated across all tiers for one composite."""
    composite: str
    factors: List[str] = field(default_factory=list)
    final_engine: Optional[str] = None
    proved_prime_cofactor: bool = False
    attempts: List[EngineAttempt] = field(default_factory=list)


class FallbackController:
    """Drive an EngineRunner through the configured tiers."""

    def __init__(self, runner: EngineRunner, tiers: List[TierConfig]):
        self.runner = runner
        self.tiers = tiers
        self.logger = logging.getLogger(f"{__name__}.FallbackController")

    def factor_all(self, composite: str) -> FallbackResult:
        """
        Factor a composite, escalating through tiers until one proves primality.

        Args:
            composite: Decimal string to factor

        Returns:
            FallbackResult; ``proved_prime_cofactor`` is False for partial results

        Raises:
            EngineNotFoundError: If a tier's engine executable is missing
        """
        result = FallbackResult(composite=composite)
        seen = set()

        for tier_index, tier in enumerate(self.tiers, start=1):
            for attempt_index in range(1, tier.attempts + 1):
                attempt = self.runner.run(
                    composite,
                    tier.engine,
                    tier.threads,
                    attempt=attempt_index,
                    timeout=tier.timeout
                )
                result.attempts.append(attempt)
                result.final_engine = tier.engine

                for factor in attempt.factors:
                    if factor not in seen:
                        seen.add(factor)
                        result.factors.append(factor)

                if attempt.proved_prime_cofactor:
                    result.proved_prime_cofactor = True
                    self.logger.info(
                        f"{composite}: fully factored by {tier.engine} "
                        f"(tier {tier_index}, attempt {attempt_index}/{tier.attempts})"
                    )
                    return result

            self.logger.info(
                f"{composite}: tier {tier_index} ({tier.engine}) exhausted "
                f"{tier.attempts} attempt(s) without proving the cofactor prime"
            )

        if self.tiers:
            self.logger.warning(
                f"{composite}: all tiers exhausted, keeping {len(result.factors)} partial factor(s)"
            )
        return result
