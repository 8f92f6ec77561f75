"""
Tests for dexsentry/price_history.py

Covers:
- PriceSeries window pruning and sample cap
- PriceHistoryStore per-token isolation, since-filtering and discard
"""

import pytest

from dexsentry.price_history import PricePoint, PriceHistoryStore, PriceSeries


class TestPriceSeries:
    def test_prunes_samples_older_than_window(self):
        """Samples older than window relative to the newest insert are dropped"""
        series = PriceSeries(window_seconds=30)
        series.add(1.0, now=0)
        series.add(1.1, now=10)
        series.add(1.2, now=35)

        assert series.prices() == [1.1, 1.2]

    def test_sample_exactly_at_window_edge_is_kept(self):
        series = PriceSeries(window_seconds=30)
        series.add(1.0, now=0)
        series.add(2.0, now=30)

        assert series.prices() == [1.0, 2.0]

    def test_max_samples_caps_length(self):
        series = PriceSeries(window_seconds=1000, max_samples=3)
        for i in range(5):
            series.add(float(i), now=i)

        assert series.prices() == [2.0, 3.0, 4.0]

    def test_points_since_filters_by_timestamp(self):
        series = PriceSeries(window_seconds=30)
        for ts in (0, 5, 10, 15):
            series.add(1.0, now=ts)

        assert [p.timestamp for p in series.points(since=10)] == [10, 15]

    def test_latest_on_empty_series_is_none(self):
        assert PriceSeries(window_seconds=30).latest() is None


class TestPriceHistoryStore:
    def test_record_returns_window_contents(self):
        store = PriceHistoryStore(window_seconds=30)
        store.record("A", 1.0, now=0)
        points = store.record("A", 2.0, now=5)

        assert points == [PricePoint(1.0, 0), PricePoint(2.0, 5)]

    def test_tokens_do_not_interfere(self):
        """Recording for one token never prunes or alters another"""
        store = PriceHistoryStore(window_seconds=30)
        store.record("A", 1.0, now=0)
        store.record("B", 5.0, now=100)

        assert store.prices("A") == [1.0]
        assert store.prices("B") == [5.0]

    def test_unknown_token_reads_are_empty(self):
        store = PriceHistoryStore()
        assert store.points("missing") == []
        assert store.prices("missing") == []
        assert store.latest("missing") is None

    def test_discard_forgets_token(self):
        store = PriceHistoryStore()
        store.record("A", 1.0, now=0)
        store.discard("A")

        assert "A" not in store
        assert len(store) == 0

    def test_discard_unknown_token_is_noop(self):
        PriceHistoryStore().discard("never-seen")

    def test_rejects_non_positive_window(self):
        with pytest.raises(ValueError):
            PriceHistoryStore(window_seconds=0)
