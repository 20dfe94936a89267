#!/usr/bin/env python3
"""
Tests for engine output grammars.
"""
import pytest

from factor_worker.errors import ConfigurationError
from factor_worker.extractors import ColonExtractor, YafuExtractor, get_extractor


YAFU_OUTPUT = """
fac: factoring 1000000016000000063
fac: using pretesting plan: normal
rho: x^2 + 3, starting 1000 iterations on C19
prp10 factor = 1000000007
Total factoring time = 0.0102 seconds

***factors found***

P10 = 1000000007
P10 = 1000000009

ans = 1
""".strip().splitlines()


class TestYafuExtractor:
    def test_candidates_in_output_order(self):
        extractor = YafuExtractor()
        assert extractor.candidates(YAFU_OUTPUT) == ["1000000007", "1000000007", "1000000009"]

    def test_total_time_line_is_not_a_factor(self):
        extractor = YafuExtractor()
        assert "0" not in extractor.candidates(["Total factoring time = 0.0102 seconds"])

    def test_prp_and_composite_results_are_ignored(self):
        lines = ["PRP45 = 123456789012345678901234567890123456789012345",
                 "C30 = 123456789012345678901234567890"]
        extractor = YafuExtractor()
        assert extractor.candidates(lines) == []
        assert extractor.proves_prime_cofactor(lines) is False

    def test_proven_prime_marker(self):
        assert YafuExtractor().proves_prime_cofactor(YAFU_OUTPUT) is True

    def test_no_marker_without_results(self):
        lines = ["fac: factoring 1000000016000000063", "prp10 factor = 1000000007"]
        assert YafuExtractor().proves_prime_cofactor(lines) is False


class TestColonExtractor:
    def test_msieve_quiet_output(self):
        lines = ["1000000016000000063", "p10: 1000000007", "p10: 1000000009"]
        extractor = ColonExtractor()
        assert extractor.candidates(lines) == ["1000000007", "1000000009"]
        assert extractor.proves_prime_cofactor(lines) is True

    def test_factor_word_labels(self):
        lines = ["prp39 factor: 100000000000000000000000000000000000169",
                 "p5 factor: 10007"]
        extractor = ColonExtractor()
        assert extractor.candidates(lines) == [
            "100000000000000000000000000000000000169", "10007"
        ]

    def test_probable_primes_do_not_prove(self):
        lines = ["prp20: 12345678901234567891", "prp21: 123456789012345678901"]
        assert ColonExtractor().proves_prime_cofactor(lines) is False

    def test_unrelated_colon_lines_are_ignored(self):
        lines = ["elapsed time: 00002", "commencing relation filtering: 12345", "p3: 101"]
        assert ColonExtractor().candidates(lines) == ["101"]

    def test_custom_labels(self):
        extractor = ColonExtractor(factor_label=r'factor\d*', proven_label=r'factor')
        lines = ["factor1: 17", "factor: 19"]
        assert extractor.candidates(lines) == ["17", "19"]
        assert extractor.proves_prime_cofactor(lines) is True


class TestGetExtractor:
    def test_known_grammars(self):
        assert isinstance(get_extractor("yafu"), YafuExtractor)
        assert isinstance(get_extractor("colon"), ColonExtractor)

    def test_unknown_grammar(self):
        with pytest.raises(ConfigurationError):
            get_extractor("cado")


def test_yafu_keeps_every_value_on_a_line():
    lines = ["prp5 factor = 10007 = 10007", "P3 = 101"]
    assert YafuExtractor().candidates(lines) == ["10007", "10007", "101"]
