#!/usr/bin/env python3
"""
Exception types for the factor worker.

Only EngineNotFoundError and ConfigurationError are fatal to a batch; every
other failure is contained at the item or factor that caused it.
"""


class FactorWorkerError(Exception):
    """Base class for factor worker errors."""


class EngineNotFoundError(FactorWorkerError):
    """A configured factoring engine executable is not available."""

    def __init__(self, engine: str, path: str):
        super().__init__(f"Engine '{engine}' executable not found: {path}")
        self.engine = engine
        self.path = path


class ConfigurationError(FactorWorkerError):
    """Configuration is structurally invalid (unknown engine, grammar, etc.)."""
