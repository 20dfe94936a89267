"""
Append-only submission journals.

Success journal lines:  "<ISO-8601 timestamp>",<number>,<factor>
Failure journal lines:  <ISO-8601 timestamp>,<number>,<factor>

Each record is written with a single append while holding an exclusive flock
on the journal file, so concurrent workers never interleave partial lines.
"""
import datetime
import fcntl
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def now_iso() -> str:
    """Local time with offset, second precision (same shape as ``date -Is``)."""
    return datetime.datetime.now().astimezone().isoformat(timespec='seconds')


@dataclass(frozen=True)
class SubmissionRecord:
    """Terminal record of one factor submission."""
    number: str
    factor: str
    outcome: str
    timestamp: str = field(default_factory=now_iso)


class Journal:
    """One append-only CSV journal file."""

    def __init__(self, path: str, quote_timestamp: bool = False):
        self.path = Path(path)
        self.quote_timestamp = quote_timestamp
        self.logger = logging.getLogger(f"{__name__}.Journal")

    def format_record(self, record: SubmissionRecord) -> str:
        timestamp = f'"{record.timestamp}"' if self.quote_timestamp else record.timestamp
        return f"{timestamp},{record.number},{record.factor}\n"

    def append(self, record: SubmissionRecord) -> bool:
        """
        Append one record.

        Returns:
            True if written, False on I/O error (logged)
        """
        line = self.format_record(record)
        try:
            if self.path.parent != Path('.'):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.write(line)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            return True
        except OSError as e:
            self.logger.error(
                f"Failed to write {record.factor} of {record.number} to {self.path}: {e}"
            )
            return False


def success_journal(path: str) -> Journal:
    return Journal(path, quote_timestamp=True)


def failure_journal(path: str) -> Journal:
    return Journal(path, quote_timestamp=False)
