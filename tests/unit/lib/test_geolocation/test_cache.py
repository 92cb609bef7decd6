"""Unit tests for the geolocation TTL cache and daily quota."""

from audit_trail.lib.geolocation import GeoCache, GeoLocation

BOGOTA = GeoLocation(country="Colombia", city="Bogota")


class FakeTime:
    def __init__(self) -> None:
        self.now = 1_000_000.0

    def __call__(self) -> float:
        return self.now


class TestGeoCacheEntries:
    """Tests for TTL behavior."""

    def test_hit_within_ttl(self) -> None:
        clock = FakeTime()
        cache = GeoCache(ttl_seconds=100, clock=clock)
        cache.put("8.8.8.8", BOGOTA)
        clock.now += 99
        assert cache.get("8.8.8.8") == BOGOTA

    def test_expired_entry_is_a_miss_and_removed(self) -> None:
        clock = FakeTime()
        cache = GeoCache(ttl_seconds=100, clock=clock)
        cache.put("8.8.8.8", BOGOTA)
        clock.now += 100
        assert cache.get("8.8.8.8") is None
        assert len(cache) == 0

    def test_sweep_removes_only_expired(self) -> None:
        clock = FakeTime()
        cache = GeoCache(ttl_seconds=100, clock=clock)
        cache.put("8.8.8.8", BOGOTA)
        clock.now += 60
        cache.put("1.1.1.1", BOGOTA)
        clock.now += 50
        assert cache.sweep() == 1
        assert cache.get("1.1.1.1") == BOGOTA


class TestGeoCacheQuota:
    """Tests for the daily request counter."""

    def test_reserve_until_quota(self) -> None:
        cache = GeoCache(daily_quota=2, clock=FakeTime())
        assert cache.try_reserve() is True
        assert cache.try_reserve() is True
        assert cache.try_reserve() is False
        assert cache.request_count == 2

    def test_release_returns_a_slot(self) -> None:
        cache = GeoCache(daily_quota=1, clock=FakeTime())
        assert cache.try_reserve() is True
        cache.release()
        assert cache.request_count == 0
        assert cache.try_reserve() is True

    def test_release_never_goes_negative(self) -> None:
        cache = GeoCache(clock=FakeTime())
        cache.release()
        assert cache.request_count == 0

    def test_window_resets_once_per_day(self) -> None:
        clock = FakeTime()
        cache = GeoCache(daily_quota=1, clock=clock)
        first_reset = cache.reset_at
        cache.try_reserve()

        clock.now += 86399
        cache.roll_window()
        assert cache.try_reserve() is False

        clock.now += 1
        cache.roll_window()
        assert cache.request_count == 0
        assert cache.reset_at == first_reset + 86400
        assert cache.try_reserve() is True

    def test_idle_windows_advance_past_now(self) -> None:
        clock = FakeTime()
        cache = GeoCache(clock=clock)
        clock.now += 3 * 86400 + 10
        cache.roll_window()
        assert cache.reset_at > clock.now
        assert cache.reset_at - clock.now <= 86400


class TestGeoCacheRollover:
    """Tests for expiry sweeping on window rollover."""

    def test_rollover_sweeps_ips_never_seen_again(self) -> None:
        clock = FakeTime()
        cache = GeoCache(clock=clock)
        for day in range(5):
            for n in range(900):
                cache.roll_window()
                cache.put(f"10.{day}.{n // 256}.{n % 256}", BOGOTA)
            clock.now += 86400
        cache.roll_window()
        assert len(cache) == 0

    def test_rollover_keeps_fresh_entries(self) -> None:
        clock = FakeTime()
        cache = GeoCache(clock=clock)
        cache.put("8.8.8.8", BOGOTA)
        clock.now += 86400 - 60
        cache.put("1.1.1.1", BOGOTA)
        clock.now += 60
        cache.roll_window()
        assert len(cache) == 1
        assert cache.get("1.1.1.1") == BOGOTA
