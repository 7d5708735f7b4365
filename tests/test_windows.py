"""Tests for sliding windows."""
import pytest

from alerts.windows import SlidingWindow, WindowAggregator, CpuPoint
from utils.constants import MINUTE_MS, OBSERVER_HISTORY_MAX

from conftest import BASE_TS


class TestSlidingWindow:
    def test_requires_span_or_size(self):
        with pytest.raises(ValueError):
            SlidingWindow()

    def test_push_prunes_entries_older_than_span(self):
        w = SlidingWindow(span_ms=10 * MINUTE_MS)
        w.push(CpuPoint(50, BASE_TS))
        w.push(CpuPoint(60, BASE_TS + 5 * MINUTE_MS))
        w.push(CpuPoint(70, BASE_TS + 11 * MINUTE_MS))
        assert [p.value for p in w] == [60, 70]

    def test_entry_exactly_at_span_edge_is_kept(self):
        w = SlidingWindow(span_ms=10 * MINUTE_MS)
        w.push(CpuPoint(50, BASE_TS))
        w.push(CpuPoint(60, BASE_TS + 10 * MINUTE_MS))
        assert len(w) == 2

    def test_max_items_caps_by_count(self):
        w = SlidingWindow(max_items=3)
        for i in range(5):
            w.push(CpuPoint(i, BASE_TS + i))
        assert [p.value for p in w] == [2, 3, 4]

    def test_window_since(self):
        w = SlidingWindow(span_ms=10 * MINUTE_MS)
        for minute in range(6):
            w.push(CpuPoint(minute, BASE_TS + minute * MINUTE_MS))
        now = BASE_TS + 5 * MINUTE_MS
        assert [p.value for p in w.window_since(2 * MINUTE_MS, now)] == [3, 4, 5]

    def test_last(self):
        w = SlidingWindow(max_items=5)
        for i in range(4):
            w.push(CpuPoint(i, BASE_TS + i))
        assert [p.value for p in w.last(2)] == [2, 3]
        assert w.last(0) == []

    def test_clear(self):
        w = SlidingWindow(span_ms=MINUTE_MS)
        w.push(CpuPoint(1, BASE_TS))
        w.clear()
        assert len(w) == 0


class TestWindowAggregator:
    def test_aggregate_errors_sums_window(self):
        agg = WindowAggregator()
        agg.push_errors(5, 100, BASE_TS)
        agg.push_errors(3, 200, BASE_TS + MINUTE_MS)
        assert agg.aggregate_errors() == (8, 300)

    def test_error_window_drops_samples_after_ten_minutes(self):
        agg = WindowAggregator()
        agg.push_errors(5, 100, BASE_TS)
        agg.push_errors(1, 100, BASE_TS + 11 * MINUTE_MS)
        assert agg.aggregate_errors() == (1, 100)

    def test_observer_history_is_bounded(self):
        agg = WindowAggregator()
        for epoch in range(OBSERVER_HISTORY_MAX + 5):
            agg.push_selection(epoch, False, BASE_TS + epoch)
        assert len(agg.observer_history) == OBSERVER_HISTORY_MAX
        assert agg.observer_history.last(1)[0].epoch_index == OBSERVER_HISTORY_MAX + 4

    def test_reset(self):
        agg = WindowAggregator()
        agg.push_cpu(90, BASE_TS)
        agg.push_errors(1, 10, BASE_TS)
        agg.push_selection(1, True, BASE_TS)
        agg.reset()
        assert len(agg.cpu) == len(agg.error_rate) == len(agg.observer_history) == 0
