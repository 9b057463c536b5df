"""
Uptime percentage (duration weighted) and chart buckets.
"""

from datetime import timedelta

import pytest

from monitoring.models import MonitorStatus
from monitoring.uptime import UptimeAggregator, default_bucket_policy
from tests.conftest import T0, make_heartbeat
from utils.helpers import TimeHelper


UP = MonitorStatus.UP
DOWN = MonitorStatus.DOWN


def at(seconds):
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def aggregator(store, settings):
    return UptimeAggregator(store, settings)


async def seed(store, *beats):
    for beat in beats:
        await store.append(beat)


class TestUptime:
    async def test_maintenance_is_excluded_from_the_ratio(self, aggregator, store):
        await seed(
            store,
            make_heartbeat(1, UP, 0, 10),
            make_heartbeat(1, MonitorStatus.MAINTENANCE, 10, 10),
            make_heartbeat(1, DOWN, 20, 10),
        )

        report = await aggregator.report(1, T0, at(30))

        assert report.uptime == 50.0

    async def test_gaps_count_as_unknown(self, aggregator, store):
        await seed(store, make_heartbeat(1, UP, 0, 10), make_heartbeat(1, DOWN, 50, 10))

        report = await aggregator.report(1, T0, at(60))

        assert report.uptime == 50.0

    async def test_coverage_is_cut_at_the_next_heartbeat(self, aggregator, store):
        # Down claims 60s but the Up at 20s ends its coverage
        await seed(store, make_heartbeat(1, DOWN, 0, 60), make_heartbeat(1, UP, 20, 60))

        report = await aggregator.report(1, T0, at(60))

        assert report.uptime == pytest.approx(66.6667)

    async def test_heartbeat_before_the_window_covers_its_start(self, aggregator, store):
        await seed(store, make_heartbeat(1, DOWN, -30, 60), make_heartbeat(1, UP, 20, 40))

        report = await aggregator.report(1, T0, at(60))

        # Down [0, 20), Up [20, 60)
        assert report.uptime == pytest.approx(66.6667)
        assert sum(p.down for p in report.points) == 0

    async def test_window_end_clips_coverage(self, aggregator, store):
        await seed(store, make_heartbeat(1, UP, 0, 30), make_heartbeat(1, DOWN, 30, 600))

        report = await aggregator.report(1, T0, at(60))

        assert report.uptime == 50.0

    async def test_nothing_countable_is_none(self, aggregator, store):
        assert (await aggregator.report(1, T0, at(60))).uptime is None

        await seed(
            store,
            make_heartbeat(1, MonitorStatus.PENDING, 0, 30),
            make_heartbeat(1, MonitorStatus.MAINTENANCE, 30, 30),
        )
        report = await aggregator.report(1, T0, at(60))
        assert report.uptime is None
        assert report.avg_ping is None

    async def test_all_pages_are_read(self, aggregator, store, settings):
        assert settings.monitoring.uptime_page_size == 10
        await seed(store, *(make_heartbeat(1, UP, i * 60, 60, ping=float(i)) for i in range(25)))

        report = await aggregator.report(1, T0, at(25 * 60))

        assert report.uptime == 100.0
        assert sum(p.up for p in report.points) == 25
        assert report.avg_ping == 12.0

    async def test_other_monitors_are_ignored(self, aggregator, store):
        await seed(store, make_heartbeat(1, UP, 0, 60), make_heartbeat(2, DOWN, 0, 60))

        assert (await aggregator.report(1, T0, at(60))).uptime == 100.0

    async def test_empty_window_is_rejected(self, aggregator):
        with pytest.raises(ValueError):
            await aggregator.report(1, at(60), at(60))


class TestStatPoints:
    async def test_bucket_counts_and_pings(self, aggregator, store):
        await seed(
            store,
            make_heartbeat(1, UP, 0, 30, ping=10.0),
            make_heartbeat(1, UP, 30, 30, ping=30.0),
            make_heartbeat(1, DOWN, 70, 60),
            make_heartbeat(1, UP, 130, 50, ping=5.0),
        )

        report = await aggregator.report(1, T0, at(180))

        start = int(TimeHelper.to_epoch(T0))
        assert report.bucket_seconds == 60
        assert [p.timestamp for p in report.points] == [start, start + 60, start + 120]
        assert [(p.up, p.down) for p in report.points] == [(2, 0), (0, 1), (1, 0)]

        first, empty, last = report.points
        assert (first.min_ping, first.max_ping, first.avg_ping) == (10.0, 30.0, 20.0)
        assert (empty.min_ping, empty.max_ping, empty.avg_ping) == (0.0, 0.0, 0.0)
        assert last.avg_ping == 5.0
        assert report.avg_ping == 15.0

    async def test_empty_buckets_are_zero_filled(self, aggregator):
        report = await aggregator.report(1, T0, at(3600))

        assert len(report.points) == 60
        assert all(p.up == 0 and p.down == 0 for p in report.points)

    async def test_custom_bucket_policy(self, store, settings):
        aggregator = UptimeAggregator(store, settings, bucket_policy=lambda seconds, points: 3600)
        await seed(store, make_heartbeat(1, UP, 0, 60), make_heartbeat(1, DOWN, 600, 60))

        report = await aggregator.report(1, T0, at(3600))

        assert len(report.points) == 1
        assert (report.points[0].up, report.points[0].down) == (1, 1)

    async def test_report_serializes(self, aggregator, store):
        await seed(store, make_heartbeat(1, UP, 0, 60, ping=4.0))

        payload = (await aggregator.report(1, T0, at(60))).to_dict()

        assert payload["uptime"] == 100.0
        assert payload["points"][0]["avgPing"] == 4.0
        assert payload["bucketSeconds"] == 60


class TestBucketPolicy:
    @pytest.mark.parametrize(
        "range_seconds, expected",
        [
            (3600, 60),
            (86400, 900),
            (7 * 86400, 10800),
            (30 * 86400, 43200),
            (1000 * 86400, 10 * 86400),
        ],
    )
    def test_smallest_fitting_width(self, range_seconds, expected):
        assert default_bucket_policy(range_seconds, 100) == expected

    @pytest.mark.parametrize("range_seconds", [1, 59, 61, 5000, 123456, 9_999_999])
    @pytest.mark.parametrize("max_points", [1, 24, 100, 500])
    def test_point_count_never_exceeds_bound(self, range_seconds, max_points):
        width = default_bucket_policy(range_seconds, max_points)
        assert -(-range_seconds // width) <= max_points
