from datetime import date

from studio_booking.infrastructure.cache import SlotCatalogCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl(studio_slots) -> None:
    clock = FakeClock()
    cache = SlotCatalogCache(ttl=5, clock=clock)
    cache.set(2, studio_slots[:3])

    clock.now += 5
    assert [s.id for s in cache.get(2)] == [1, 2, 3]

    clock.now += 0.1
    assert cache.get(2) is None


def test_get_returns_a_copy(studio_slots) -> None:
    cache = SlotCatalogCache(ttl=5)
    cache.set(2, studio_slots[:3])

    cache.get(2).clear()

    assert len(cache.get(2)) == 3


def test_write_invalidates_only_that_weekday(studio_slots) -> None:
    cache = SlotCatalogCache(ttl=60)
    cache.set(2, studio_slots[:3])
    cache.set(0, studio_slots[5:])

    cache.invalidate_slot_day(1, date(2026, 10, 20))

    assert cache.get(2) is None
    assert cache.get(0) is not None


def test_zero_ttl_disables_caching(studio_slots) -> None:
    cache = SlotCatalogCache(ttl=0)
    cache.set(2, studio_slots)
    assert cache.get(2) is None


def test_clear_drops_everything(studio_slots) -> None:
    cache = SlotCatalogCache(ttl=60)
    cache.set(2, studio_slots)
    cache.set(3, studio_slots)
    cache.clear()
    assert cache.get(2) is None and cache.get(3) is None
