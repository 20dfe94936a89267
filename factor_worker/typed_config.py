"""
Typed Configuration Classes

Provides type-safe access to configuration values. Tier parameters (engine,
thread budget, attempts, timeout) are plain configuration so deployments can
tune them without code changes.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from pathlib import Path

from .errors import ConfigurationError
from .extractors import get_extractor


@dataclass
class RegistryConfig:
    """Remote factor registry connection settings."""
    url: str = "http://factordb.com/reportfactor.php"
    retry_count: int = 10
    retry_delay: float = 10.0
    timeout: int = 60
    max_concurrent_submissions: int = 2
    # Directory of shared slot files; None keeps the gate process-local
    gate_dir: Optional[str] = None
    submitted_token: str = "submitted"
    already_known_token: str = "Already"
    does_not_divide_token: str = "Does not divide"
    error_token: str = "Error"


@dataclass
class LockConfig:
    """Work item lock namespace."""
    directory: str = "/tmp/factordb-composites"

    def ensure_dir_exists(self) -> None:
        Path(self.directory).mkdir(parents=True, exist_ok=True)


@dataclass
class JournalConfig:
    """Submission journal files."""
    success_file: str = "factor-submissions.csv"
    failure_file: str = "failed-submissions.csv"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    file: str = "data/logs/factor_worker.log"
    level: str = "INFO"

    def ensure_log_dir_exists(self) -> None:
        """Create log directory if it doesn't exist."""
        Path(self.file).parent.mkdir(parents=True, exist_ok=True)


@dataclass
class ExecutionConfig:
    """Engine execution settings shared by all tiers."""
    digit_slack: int = 2
    save_raw_output: bool = False
    output_dir: str = "data/outputs"


@dataclass
class EngineConfig:
    """
    One external factoring engine.

    ``args`` and ``stdin`` are templates; ``{number}`` and ``{threads}`` are
    substituted per attempt.
    """
    name: str
    path: str
    args: List[str] = field(default_factory=list)
    stdin: Optional[str] = None
    grammar: str = "yafu"
    working_dir: Optional[str] = None
    factor_label: Optional[str] = None
    proven_label: Optional[str] = None


@dataclass
class TierConfig:
    """One (engine, thread budget, attempt count) step of the fallback sequence."""
    engine: str
    threads: int = 1
    attempts: int = 1
    timeout: Optional[float] = None


def _default_engines() -> Dict[str, EngineConfig]:
    return {
        'yafu': EngineConfig(
            name='yafu',
            path='yafu',
            args=['-threads', '{threads}', '-R'],
            stdin='factor({number})',
            grammar='yafu',
        ),
        'msieve': EngineConfig(
            name='msieve',
            path='msieve',
            args=['-q', '-t', '{threads}', '{number}'],
            grammar='colon',
        ),
    }


def _default_tiers() -> List[TierConfig]:
    return [
        TierConfig(engine='yafu', threads=1, attempts=3),
        TierConfig(engine='msieve', threads=4, attempts=1),
    ]


@dataclass
class AppConfig:
    """
    Root configuration object containing all settings.

    Usage:
        config = TypedConfigLoader().load("worker.yaml")
        print(config.registry.url)
        print([tier.engine for tier in config.tiers])
    """
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    locks: LockConfig = field(default_factory=LockConfig)
    journals: JournalConfig = field(default_factory=JournalConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    engines: Dict[str, EngineConfig] = field(default_factory=_default_engines)
    tiers: List[TierConfig] = field(default_factory=_default_tiers)

    def ensure_dirs_exist(self) -> None:
        """Create all required directories."""
        self.locks.ensure_dir_exists()
        self.logging.ensure_log_dir_exists()
        if self.execution.save_raw_output:
            Path(self.execution.output_dir).mkdir(parents=True, exist_ok=True)

    def validate(self) -> None:
        """
        Check cross-references between tiers and engines.

        Raises:
            ConfigurationError: On unknown engines or grammars, or bad budgets
        """
        for name, engine in self.engines.items():
            get_extractor(engine.grammar)
            if not engine.path:
                raise ConfigurationError(f"Engine '{name}' has no path")

        for index, tier in enumerate(self.tiers, start=1):
            if tier.engine not in self.engines:
                raise ConfigurationError(
                    f"Tier {index} references unknown engine '{tier.engine}'"
                )
            if tier.threads < 1:
                raise ConfigurationError(f"Tier {index} threads must be >= 1, got {tier.threads}")
            if tier.attempts < 1:
                raise ConfigurationError(f"Tier {index} attempts must be >= 1, got {tier.attempts}")

        if self.registry.retry_count < 0:
            raise ConfigurationError(f"registry.retry_count must be >= 0, got {self.registry.retry_count}")


class TypedConfigLoader:
    """
    Load configuration from YAML into typed dataclasses.

    Usage:
        loader = TypedConfigLoader()
        config = loader.load("worker.yaml")
    """

    def load(self, config_path: str) -> AppConfig:
        """
        Load and validate configuration from a YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Typed AppConfig instance
        """
        from .config_manager import ConfigManager

        manager = ConfigManager()
        raw_config = manager.load_config(config_path)

        config = self.parse(raw_config)
        config.validate()
        return config

    def parse(self, raw: Dict[str, Any]) -> AppConfig:
        """Parse raw dictionary into typed config (no validation)."""
        return AppConfig(
            registry=self._parse_registry(raw.get('registry', {})),
            locks=LockConfig(directory=raw.get('locks', {}).get('directory', '/tmp/factordb-composites')),
            journals=self._parse_journals(raw.get('journals', {})),
            logging=self._parse_logging(raw.get('logging', {})),
            execution=self._parse_execution(raw.get('execution', {})),
            engines=self._parse_engines(raw.get('engines')),
            tiers=self._parse_tiers(raw.get('tiers')),
        )

    def _parse_registry(self, raw: Dict[str, Any]) -> RegistryConfig:
        defaults = RegistryConfig()
        return RegistryConfig(
            url=raw.get('url', defaults.url),
            retry_count=int(raw.get('retry_count', defaults.retry_count)),
            retry_delay=float(raw.get('retry_delay', defaults.retry_delay)),
            timeout=int(raw.get('timeout', defaults.timeout)),
            max_concurrent_submissions=int(
                raw.get('max_concurrent_submissions', defaults.max_concurrent_submissions)
            ),
            gate_dir=raw.get('gate_dir'),
            submitted_token=raw.get('submitted_token', defaults.submitted_token),
            already_known_token=raw.get('already_known_token', defaults.already_known_token),
            does_not_divide_token=raw.get('does_not_divide_token', defaults.does_not_divide_token),
            error_token=raw.get('error_token', defaults.error_token),
        )

    def _parse_journals(self, raw: Dict[str, Any]) -> JournalConfig:
        return JournalConfig(
            success_file=raw.get('success_file', 'factor-submissions.csv'),
            failure_file=raw.get('failure_file', 'failed-submissions.csv'),
        )

    def _parse_logging(self, raw: Dict[str, Any]) -> LoggingConfig:
        return LoggingConfig(
            file=raw.get('file', 'data/logs/factor_worker.log'),
            level=raw.get('level', 'INFO'),
        )

    def _parse_execution(self, raw: Dict[str, Any]) -> ExecutionConfig:
        return ExecutionConfig(
            digit_slack=int(raw.get('digit_slack', 2)),
            save_raw_output=raw.get('save_raw_output', False),
            output_dir=raw.get('output_dir', 'data/outputs'),
        )

    def _parse_engines(self, raw: Optional[Dict[str, Any]]) -> Dict[str, EngineConfig]:
        if not raw:
            return _default_engines()

        engines = {}
        for name, spec in raw.items():
            spec = spec or {}
            engines[name] = EngineConfig(
                name=name,
                path=spec.get('path', name),
                args=[str(arg) for arg in spec.get('args', [])],
                stdin=spec.get('stdin'),
                grammar=spec.get('grammar', 'yafu'),
                working_dir=spec.get('working_dir'),
                factor_label=spec.get('factor_label'),
                proven_label=spec.get('proven_label'),
            )
        return engines

    def _parse_tiers(self, raw: Optional[List[Dict[str, Any]]]) -> List[TierConfig]:
        if raw is None:
            return _default_tiers()

        tiers = []
        for spec in raw:
            if 'engine' not in spec:
                raise ConfigurationError(f"Tier is missing 'engine': {spec}")
            timeout = spec.get('timeout')
            tiers.append(TierConfig(
                engine=spec['engine'],
                threads=int(spec.get('threads', 1)),
                attempts=int(spec.get('attempts', 1)),
                timeout=float(timeout) if timeout is not None else None,
            ))
        return tiers
