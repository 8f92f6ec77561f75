"""Tests for trading_engine/risk_sizer.py"""

import pytest

from dexsentry.trading_engine.risk_sizer import RiskSizer


class TestRiskSizer:
    def test_defaults_to_one_percent(self):
        calc = RiskSizer().calculate(10.0)

        assert calc.risk_percent == 1.0
        assert calc.risk_amount == 0.1
        assert calc.amount_lamports == 100_000_000
        assert calc.error is None

    def test_presets_always_returned(self):
        rec = RiskSizer().calculate(10.0).recommendation

        assert (rec.conservative, rec.moderate, rec.aggressive) == (0.1, 0.25, 0.5)

    def test_explicit_amount_wins_over_percent(self):
        calc = RiskSizer().calculate(10.0, risk_percent=3.0, risk_amount=0.5)

        assert calc.risk_amount == 0.5
        assert calc.risk_percent == 5.0

    def test_explicit_percent(self):
        calc = RiskSizer().calculate(10.0, risk_percent=2.5)

        assert calc.risk_amount == 0.25
        assert calc.risk_percent == 2.5

    def test_non_positive_overrides_ignored(self):
        calc = RiskSizer().calculate(10.0, risk_percent=0, risk_amount=-1)
        assert calc.risk_percent == 1.0

    def test_amount_capped_at_balance(self):
        calc = RiskSizer().calculate(1.0, risk_amount=5.0)

        assert calc.risk_amount == 1.0
        assert calc.risk_percent == 100.0

    def test_minimum_trade_size_floor(self):
        """1% of 0.05 SOL is below 0.001, so the floor applies"""
        calc = RiskSizer().calculate(0.05)

        assert calc.risk_amount == 0.001
        assert calc.risk_percent == 2.0
        assert calc.amount_lamports == 1_000_000

    def test_floor_can_exceed_balance(self):
        calc = RiskSizer().calculate(0.0005)

        assert calc.risk_amount == 0.001
        assert calc.risk_percent == 200.0

    def test_lamports_are_floored(self):
        calc = RiskSizer().calculate(1.23456789)

        assert calc.amount_lamports == 12_345_678
        assert calc.risk_amount == 0.0123

    @pytest.mark.parametrize("balance", [0, -5, None, "10", True, float("inf")])
    def test_invalid_balance_returns_error(self, balance):
        calc = RiskSizer().calculate(balance)

        assert calc.error is not None
        assert calc.amount_lamports == 0
        assert calc.ok is False
