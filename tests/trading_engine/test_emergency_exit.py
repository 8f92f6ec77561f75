"""
Tests for trading_engine/emergency_exit.py

Covers:
- Each detector in isolation
- Exit policy (critical / two highs / single high)
- Failure and timeout isolation between detectors
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from dexsentry.constants import LAMPORTS_PER_SOL
from dexsentry.data_sources.base import AccountInfo, TransactionSummary
from dexsentry.trading_engine.emergency_exit import (
    CreatorSellDetector,
    EmergencyExitMonitor,
    EmergencyTrigger,
    ExitCheck,
    ExitDetector,
    LargeSellDetector,
    LpRemovalDetector,
    RedCandleDetector,
    decide_exit,
)

TOKEN = "TokenMint1111111111111111111111111111111111"
POOL = "PoolAddr11111111111111111111111111111111111"
CREATOR = "Creator111111111111111111111111111111111111"
NOW = 1_700_000_000.0


def _chain(pool_account="healthy", token_txs=None, creator_txs=None):
    chain = MagicMock()
    if pool_account == "healthy":
        pool_account = AccountInfo(address=POOL, lamports=50 * LAMPORTS_PER_SOL)
    chain.get_account_info = AsyncMock(return_value=pool_account)

    async def _recent(address, limit=10):
        if address == CREATOR:
            return creator_txs or []
        return token_txs or []

    chain.get_recent_transactions = AsyncMock(side_effect=_recent)
    return chain


def _check(**overrides):
    values = dict(token_id=TOKEN, current_price=1.0, now=NOW, pool_address=POOL, creator_address=CREATOR)
    values.update(overrides)
    return ExitCheck(**values)


def _large_sell_tx(sol=15.0):
    return TransactionSummary(signature="bigsell" * 5, block_time=int(NOW) - 60, balance_deltas=[0, -int(sol * LAMPORTS_PER_SOL)])


def _creator_tx(age_seconds=5):
    return TransactionSummary(signature="creator" * 5, block_time=int(NOW - age_seconds))


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------


class TestLpRemovalDetector:
    @pytest.mark.asyncio
    async def test_missing_pool_account_is_critical(self):
        trigger = await LpRemovalDetector(_chain(pool_account=None)).evaluate(_check())
        assert trigger.triggered is True
        assert trigger.severity == "critical"

    @pytest.mark.asyncio
    async def test_zero_lamports_is_critical(self):
        trigger = await LpRemovalDetector(_chain(AccountInfo(address=POOL, lamports=0))).evaluate(_check())
        assert trigger.triggered and trigger.severity == "critical"

    @pytest.mark.asyncio
    async def test_no_pool_address_not_triggered(self):
        chain = _chain()
        trigger = await LpRemovalDetector(chain).evaluate(_check(pool_address=None))
        assert trigger.triggered is False
        chain.get_account_info.assert_not_awaited()


class TestLargeSellDetector:
    @pytest.mark.asyncio
    async def test_large_latest_transaction_is_high(self):
        trigger = await LargeSellDetector(_chain(token_txs=[_large_sell_tx(15.0)])).evaluate(_check())
        assert trigger.triggered is True
        assert trigger.severity == "high"
        assert "15.00 SOL" in trigger.reason

    @pytest.mark.asyncio
    async def test_small_transaction_not_triggered(self):
        trigger = await LargeSellDetector(_chain(token_txs=[_large_sell_tx(3.0)])).evaluate(_check())
        assert trigger.triggered is False

    @pytest.mark.asyncio
    async def test_only_latest_transaction_is_inspected(self):
        txs = [_large_sell_tx(1.0), _large_sell_tx(50.0)]
        trigger = await LargeSellDetector(_chain(token_txs=txs)).evaluate(_check())
        assert trigger.triggered is False


class TestRedCandleDetector:
    def test_sixty_two_percent_drop_is_critical(self):
        detector = RedCandleDetector()
        detector.detect(TOKEN, 1.0, now=NOW)
        trigger = detector.detect(TOKEN, 0.38, now=NOW + 5)

        assert trigger.triggered is True
        assert trigger.severity == "critical"

    def test_crash_inside_ten_seconds_from_flat_start(self):
        """1.00 at 0s, 1.00 at 2s, 0.38 at 8s"""
        detector = RedCandleDetector()
        steps = [detector.detect(TOKEN, price, now=NOW + offset) for price, offset in ((1.0, 0), (1.0, 2), (0.38, 8))]

        assert [s.triggered for s in steps] == [False, False, True]
        assert steps[2].severity == "critical"
        assert "62.0% drop" in steps[2].reason

    def test_unrecorded_detect_leaves_window_untouched(self):
        detector = RedCandleDetector()
        detector.detect(TOKEN, 1.0, now=NOW)
        trigger = detector.detect(TOKEN, 0.38, now=NOW + 5, record=False)

        assert trigger.triggered is True
        assert detector.price_windows.prices(TOKEN) == [1.0]

    def test_fifty_nine_percent_drop_not_triggered(self):
        detector = RedCandleDetector()
        detector.detect(TOKEN, 1.0, now=NOW)
        trigger = detector.detect(TOKEN, 0.41, now=NOW + 5)

        assert trigger.triggered is False

    def test_single_sample_not_triggered(self):
        assert RedCandleDetector().detect(TOKEN, 1.0, now=NOW).triggered is False

    def test_drop_outside_sub_window_ignored(self):
        """Peak 15s ago is in the 30s window but outside the 10s candle"""
        detector = RedCandleDetector()
        detector.detect(TOKEN, 1.0, now=NOW)
        trigger = detector.detect(TOKEN, 0.2, now=NOW + 15)

        assert trigger.triggered is False

    def test_malformed_price_ignored(self):
        detector = RedCandleDetector()
        trigger = detector.detect(TOKEN, float("nan"), now=NOW)

        assert trigger.triggered is False
        assert TOKEN not in detector.price_windows


class TestCreatorSellDetector:
    @pytest.mark.asyncio
    async def test_recent_creator_activity_is_high(self):
        trigger = await CreatorSellDetector(_chain(creator_txs=[_creator_tx(5)])).evaluate(_check())
        assert trigger.triggered is True
        assert trigger.severity == "high"

    @pytest.mark.asyncio
    async def test_old_creator_activity_not_triggered(self):
        trigger = await CreatorSellDetector(_chain(creator_txs=[_creator_tx(120)])).evaluate(_check())
        assert trigger.triggered is False

    @pytest.mark.asyncio
    async def test_no_creator_address_not_triggered(self):
        trigger = await CreatorSellDetector(_chain()).evaluate(_check(creator_address=None))
        assert trigger.triggered is False


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class TestDecideExit:
    def test_critical_exits_with_joined_reasons(self):
        result = decide_exit([
            EmergencyTrigger(True, "critical", "LP removed"),
            EmergencyTrigger(True, "critical", "Crash"),
            EmergencyTrigger(False, "high"),
        ])
        assert result.should_exit is True
        assert result.critical_reason == "LP removed, Crash"
        assert result.severity == "critical"

    def test_two_highs_exit(self):
        result = decide_exit([EmergencyTrigger(True, "high", "r1"), EmergencyTrigger(True, "high", "r2")])
        assert result.should_exit is True
        assert result.critical_reason == "Multiple warning signs: r1, r2"

    def test_single_high_does_not_exit(self):
        result = decide_exit([EmergencyTrigger(True, "high", "r1"), EmergencyTrigger(False, "high")])
        assert result.should_exit is False
        assert result.severity == "high"

    def test_nothing_triggered(self):
        result = decide_exit([EmergencyTrigger(False, "medium")])
        assert result.should_exit is False
        assert result.severity is None


class _SlowDetector(ExitDetector):
    name = "slow"

    async def evaluate(self, check):
        await asyncio.sleep(1)
        return self.fire("too late", "critical")


class _BrokenDetector(ExitDetector):
    name = "broken"

    async def evaluate(self, check):
        raise ConnectionError("rpc down")


class TestEmergencyExitMonitor:
    @pytest.mark.asyncio
    async def test_healthy_position_does_not_exit(self):
        monitor = EmergencyExitMonitor(_chain())
        result = await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)

        assert result.should_exit is False
        assert [t.detector for t in result.triggers] == ["lp_removal", "large_sell", "red_candle", "creator_sell"]

    @pytest.mark.asyncio
    async def test_lp_removed_forces_exit(self):
        monitor = EmergencyExitMonitor(_chain(pool_account=None))
        result = await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)

        assert result.should_exit is True
        assert "Liquidity pool removed" in result.critical_reason

    @pytest.mark.asyncio
    async def test_one_high_warns_two_highs_exit(self):
        one_high = EmergencyExitMonitor(_chain(creator_txs=[_creator_tx(5)]))
        result = await one_high.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)
        assert result.should_exit is False

        two_high = EmergencyExitMonitor(_chain(token_txs=[_large_sell_tx()], creator_txs=[_creator_tx(5)]))
        result = await two_high.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)
        assert result.should_exit is True
        assert result.critical_reason.startswith("Multiple warning signs:")

    @pytest.mark.asyncio
    async def test_failing_detector_does_not_abort_others(self):
        chain = _chain(pool_account=None)
        chain.get_recent_transactions = AsyncMock(side_effect=ConnectionError("rpc down"))
        monitor = EmergencyExitMonitor(chain)

        result = await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)

        assert result.should_exit is True
        assert len(result.triggers) == 4

    @pytest.mark.asyncio
    async def test_timed_out_detector_reports_not_triggered(self):
        monitor = EmergencyExitMonitor(
            _chain(), detectors=[_SlowDetector(), _BrokenDetector()], detector_timeout_seconds=0.01
        )

        result = await monitor.check_all_triggers(TOKEN, 1.0, now=NOW)

        assert result.should_exit is False
        assert all(not t.triggered for t in result.triggers)

    @pytest.mark.asyncio
    async def test_crash_across_sweeps_triggers_exit(self):
        monitor = EmergencyExitMonitor(_chain())
        await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)
        result = await monitor.check_all_triggers(TOKEN, 0.3, POOL, CREATOR, now=NOW + 5)

        assert result.should_exit is True
        assert result.severity == "critical"

    @pytest.mark.asyncio
    async def test_unrecorded_check_stores_nothing_until_record_price(self):
        monitor = EmergencyExitMonitor(_chain())
        await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW, record=False)

        assert TOKEN not in monitor.price_windows

        monitor.record_price(TOKEN, 1.0, now=NOW)
        result = await monitor.check_all_triggers(TOKEN, 0.3, POOL, CREATOR, now=NOW + 5, record=False)

        assert result.should_exit is True
        assert monitor.price_windows.prices(TOKEN) == [1.0]

    @pytest.mark.asyncio
    async def test_discard_clears_price_window(self):
        monitor = EmergencyExitMonitor(_chain())
        await monitor.check_all_triggers(TOKEN, 1.0, POOL, CREATOR, now=NOW)
        monitor.discard(TOKEN)

        assert TOKEN not in monitor.price_windows

    @pytest.mark.asyncio
    async def test_missing_token_id_does_not_exit(self):
        result = await EmergencyExitMonitor(_chain()).check_all_triggers("", 1.0)
        assert result.should_exit is False
