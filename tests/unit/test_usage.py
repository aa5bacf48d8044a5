"""
Unit tests for the usage counter.
Tests UsageCounter from app/storage/usage.py
"""
import logging
import pytest
import threading
from unittest.mock import MagicMock

import redis
from prometheus_client import REGISTRY

from app.storage import UsageCounter


@pytest.mark.unit
class TestGetUsedBytes:
    """Test reading the counter cell."""

    def test_initialised_from_listing(self, usage, fake_redis, object_store):
        """Test an absent cell is rebuilt from the bucket listing."""
        object_store.add("a/one.txt", 100)
        object_store.add("b/two.txt", 250)

        assert usage.get_used_bytes() == 350
        assert fake_redis.get("used_bytes") == "350"

    def test_cell_used_when_present(self, usage, fake_redis, object_store):
        """Test the cell is returned verbatim without listing."""
        object_store.add("a/one.txt", 100)
        fake_redis.set("used_bytes", 42)

        assert usage.get_used_bytes() == 42

    def test_negative_cell_reads_as_zero(self, usage, fake_redis):
        fake_redis.set("used_bytes", -10)

        assert usage.get_used_bytes() == 0

    def test_concurrent_initialisation_kept(self, fake_redis, object_store):
        """Test a value written while listing is not overwritten."""
        object_store.add("a/one.txt", 100)
        counter = UsageCounter(fake_redis, object_store)

        original = counter._sum_listing

        def racing_listing():
            total = original()
            fake_redis.set("used_bytes", 777)
            return total

        counter._sum_listing = racing_listing

        assert counter.get_used_bytes() == 777


@pytest.mark.unit
class TestAdjust:
    """Test atomic adjustments."""

    def test_adjust_applies_delta(self, usage, fake_redis):
        fake_redis.set("used_bytes", 100)

        assert usage.adjust(50) == 150
        assert usage.adjust(-30) == 120

    def test_zero_delta_is_noop(self, usage, fake_redis):
        fake_redis.set("used_bytes", 100)

        assert usage.adjust(0) is None
        assert fake_redis.get("used_bytes") == "100"

    def test_absent_cell_left_absent(self, usage, fake_redis):
        """Test adjusting before initialisation leaves the cell to the next read."""
        assert usage.adjust(500) is None
        assert fake_redis.get("used_bytes") is None

    def test_adjust_is_one_script_call(self, object_store):
        """Test the existence check and increment reach Redis as one script."""
        client = MagicMock()
        client.register_script.return_value.return_value = 1500
        counter = UsageCounter(client, object_store)

        assert counter.adjust(500) == 1500

        script = client.register_script.return_value
        script.assert_called_once_with(keys=["used_bytes"], args=[500])
        client.exists.assert_not_called()
        client.incrby.assert_not_called()

    def test_cell_reset_mid_flight_not_recreated(self, usage, fake_redis, object_store):
        """Test an adjustment landing after a reset does not leave a partial cell."""
        object_store.add("a/one.txt", 100)
        fake_redis.set("used_bytes", 100)

        fake_redis.delete("used_bytes")
        assert usage.adjust(-100) is None

        assert fake_redis.get("used_bytes") is None
        assert usage.get_used_bytes() == 100

    def test_concurrent_adjustments_lose_nothing(self, usage, fake_redis):
        """Test interleaved +d1, +d2, -d3 from many threads sum exactly."""
        fake_redis.set("used_bytes", 10_000)
        deltas = [+300, +1200, -700] * 50
        barrier = threading.Barrier(len(deltas))

        def worker(delta):
            barrier.wait()
            usage.adjust(delta)

        threads = [threading.Thread(target=worker, args=(d,)) for d in deltas]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert int(fake_redis.get("used_bytes")) == 10_000 + sum(deltas)

    def test_redis_failure_logged_as_drift(self, object_store, caplog):
        """Test a failed adjustment is logged, counted, and not raised."""
        failing = MagicMock()
        failing.register_script.return_value.side_effect = redis.ConnectionError("connection reset")
        counter = UsageCounter(failing, object_store)
        before = REGISTRY.get_sample_value("usage_drift_events_total") or 0

        with caplog.at_level(logging.WARNING, logger="app.storage.usage"):
            assert counter.adjust(-2048) is None

        assert REGISTRY.get_sample_value("usage_drift_events_total") == before + 1
        drift = [r for r in caplog.records if getattr(r, "event", None) == "usage_drift"]
        assert len(drift) == 1
        assert drift[0].delta == -2048


@pytest.mark.unit
class TestReconcile:
    """Test full recomputation."""

    def test_reconcile_overwrites_drifted_cell(self, usage, fake_redis, object_store):
        object_store.add("a/one.txt", 100)
        object_store.add("b/two.txt", 200)
        fake_redis.set("used_bytes", 99_999)

        assert usage.reconcile() == 300
        assert fake_redis.get("used_bytes") == "300"
