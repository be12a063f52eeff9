"""Unit tests for the Convex boosted-APY payload parser."""
from __future__ import annotations

import pytest

from stableloop.protocols.curve.convex import parse_boosted_apy


class TestParseBoostedApy:
    def test_prefers_weekly(self) -> None:
        assert parse_boosted_apy({"apyWeek": 0.04, "apy": 0.09}) == 0.04

    def test_falls_back_to_apy(self) -> None:
        assert parse_boosted_apy({"apy": 0.07}) == 0.07

    def test_falls_back_to_base(self) -> None:
        assert parse_boosted_apy({"apy_base": 0.02}) == 0.02

    def test_percent_converted(self) -> None:
        assert parse_boosted_apy({"apy": 5}) == pytest.approx(0.05)

    def test_non_numeric_skipped(self) -> None:
        assert parse_boosted_apy({"apyWeek": "n/a", "apy": 0.03}) == 0.03

    def test_nan_skipped(self) -> None:
        assert parse_boosted_apy({"apyWeek": float("nan")}) is None

    def test_empty(self) -> None:
        assert parse_boosted_apy({}) is None
