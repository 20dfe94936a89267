"""
Factor extraction rules for engine output.

Each engine prints factors in its own textual grammar. A FactorExtractor turns
the captured output lines into an ordered list of candidate values and decides
whether the output certifies the remaining cofactor as prime. Filtering
(cofactor drop, digit bound, dedup) is applied by the engine runner so every
grammar gets the same policy.

Supported grammars:
    yafu  - "P<digits> = <value>" result lines and "... factor = <value>" lines
    colon - "<label>: <value>" lines (msieve style, e.g. "p12: 123456789011")
"""
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type

from .errors import ConfigurationError


class FactorExtractor(ABC):
    """Extraction rule for one engine output grammar."""

    name: str = "base"
    # Last extracted entry is the residual cofactor, not a found factor
    reports_cofactor: bool = True

    @abstractmethod
    def candidates(self, lines: List[str]) -> List[str]:
        """
        Return every candidate factor value in output order.

        Args:
            lines: Captured engine output, one entry per line

        Returns:
            Decimal strings, duplicates and cofactor included
        """

    @abstractmethod
    def proves_prime_cofactor(self, lines: List[str]) -> bool:
        """Return True if the output contains the proven-prime marker."""


class YafuExtractor(FactorExtractor):
    """
    YAFU grammar.

    Final results are printed as ``P<digits> = <value>`` (proven prime),
    ``PRP<digits> = <value>`` (probable prime) or ``C<digits> = <value>``;
    intermediate finds look like ``prp5 factor = 12345``.
    """

    name = "yafu"

    _MARKER_RE = re.compile(r'^P\d')
    _FACTOR_LINE_RE = re.compile(r'factor = ')
    _VALUE_RE = re.compile(r'= (\d+)')

    def candidates(self, lines: List[str]) -> List[str]:
        values = []
        for line in lines:
            if self._MARKER_RE.match(line) or self._FACTOR_LINE_RE.search(line):
                values.extend(self._VALUE_RE.findall(line))
        return values

    def proves_prime_cofactor(self, lines: List[str]) -> bool:
        return any(self._MARKER_RE.match(line) for line in lines)


class ColonExtractor(FactorExtractor):
    """
    Colon-delimited ``<label>: <value>`` grammar.

    Labels are matched in full against ``factor_label``; the ones that also
    match ``proven_label`` certify primality. Defaults follow msieve, which
    prints ``p<digits>`` for proven primes and ``prp<digits>`` for probable
    primes, with or without a trailing ``factor`` word.
    """

    name = "colon"

    DEFAULT_FACTOR_LABEL = r'(?:p|prp)\d+(?: factor)?'
    DEFAULT_PROVEN_LABEL = r'p\d+(?: factor)?'

    _LINE_RE = re.compile(r'^\s*(?P<label>[^:]+?)\s*:\s*(?P<value>\d+)\s*$')

    def __init__(self, factor_label: Optional[str] = None, proven_label: Optional[str] = None):
        self.factor_label = re.compile(factor_label or self.DEFAULT_FACTOR_LABEL)
        self.proven_label = re.compile(proven_label or self.DEFAULT_PROVEN_LABEL)

    def _matches(self, lines: List[str]):
        for line in lines:
            match = self._LINE_RE.match(line)
            if match and self.factor_label.fullmatch(match.group('label')):
                yield match.group('label'), match.group('value')

    def candidates(self, lines: List[str]) -> List[str]:
        return [value for _, value in self._matches(lines)]

    def proves_prime_cofactor(self, lines: List[str]) -> bool:
        return any(self.proven_label.fullmatch(label) for label, _ in self._matches(lines))


EXTRACTORS: Dict[str, Type[FactorExtractor]] = {
    YafuExtractor.name: YafuExtractor,
    ColonExtractor.name: ColonExtractor,
}


def get_extractor(grammar: str, factor_label: Optional[str] = None,
                  proven_label: Optional[str] = None) -> FactorExtractor:
    """
    Build the extractor registered for a grammar name.

    Raises:
        ConfigurationError: If the grammar is unknown
    """
    if grammar not in EXTRACTORS:
        raise ConfigurationError(
            f"Unknown output grammar '{grammar}' (known: {', '.join(sorted(EXTRACTORS))})"
        )
    if grammar == ColonExtractor.name:
        return ColonExtractor(factor_label=factor_label, proven_label=proven_label)
    return EXTRACTORS[grammar]()
