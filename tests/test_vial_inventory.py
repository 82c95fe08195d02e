from datetime import date, datetime, timedelta

import pytest

from fakes import FakeVialStore, catalog_with, sealed_vial
from vaccine_registry.services.vial_inventory import (
    ConflictError,
    InvalidVialTransition,
    OutOfStock,
    UnknownVaccine,
    Vial,
    VialInventoryManager,
    VialState,
)

T0 = datetime(2026, 3, 2, 8, 0, 0)
FAR_FUTURE = date(2027, 12, 31)


def open_vial(vial_id, usable_until, doses=5, vaccine_id=1):
    return Vial(
        id=vial_id,
        vaccine_id=vaccine_id,
        lot="LOT-O",
        sealed_expiry=FAR_FUTURE,
        doses_remaining=doses,
        state=VialState.OPEN,
        opened_at=usable_until - timedelta(hours=6),
        usable_until=usable_until,
    )


def make_manager(vials, **catalog_kwargs):
    store = FakeVialStore(vials)
    return VialInventoryManager(store, catalog_with(**catalog_kwargs)), store


# ---------------- DRAW: FRESH STOCK ----------------

def test_first_draw_opens_exactly_one_sealed_vial():
    manager, store = make_manager([
        sealed_vial(1, FAR_FUTURE),
        sealed_vial(2, FAR_FUTURE),
    ])

    vial_id = manager.draw_dose(1, T0)

    assert vial_id == 1
    opened = store.vials[1]
    assert opened.state == VialState.OPEN
    assert opened.opened_at == T0
    assert opened.usable_until == T0 + timedelta(hours=6)
    assert opened.doses_remaining == 9
    assert store.vials[2].state == VialState.SEALED
    assert store.vials[2].opened_at is None


def test_opening_is_persisted_before_the_decrement():
    manager, store = make_manager([sealed_vial(1, FAR_FUTURE)])

    manager.draw_dose(1, T0)

    assert store.writes == [
        (1, VialState.OPEN, 10),
        (1, VialState.OPEN, 9),
    ]


def test_restart_after_crash_between_open_and_decrement_reuses_the_open_vial():
    manager, store = make_manager([
        sealed_vial(1, FAR_FUTURE),
        sealed_vial(2, FAR_FUTURE),
    ])
    store.fail_on_write = 1

    with pytest.raises(RuntimeError):
        manager.draw_dose(1, T0)

    assert store.vials[1].state == VialState.OPEN
    assert store.vials[1].doses_remaining == 10

    store.fail_on_write = None
    assert manager.draw_dose(1, T0 + timedelta(minutes=1)) == 1
    assert store.vials[1].doses_remaining == 9
    assert store.vials[2].state == VialState.SEALED


# ---------------- DRAW: EXISTING OPEN VIAL ----------------

def test_usable_open_vial_is_decremented_and_nothing_new_is_opened():
    manager, store = make_manager([
        open_vial(5, T0 + timedelta(hours=3), doses=4),
        sealed_vial(1, date(2026, 3, 10)),
    ])

    assert manager.draw_dose(1, T0) == 5

    assert store.vials[5].doses_remaining == 3
    assert store.vials[5].state == VialState.OPEN
    assert store.vials[1].state == VialState.SEALED
    assert store.writes == [(5, VialState.OPEN, 3)]


def test_open_vial_closest_to_its_deadline_is_used_first():
    manager, store = make_manager([
        open_vial(3, T0 + timedelta(hours=5)),
        open_vial(4, T0 + timedelta(hours=1)),
        open_vial(7, T0 + timedelta(hours=1)),
    ])

    assert manager.draw_dose(1, T0) == 4


def test_stale_open_vial_is_ignored_and_next_sealed_vial_is_opened():
    manager, store = make_manager([
        open_vial(5, T0 - timedelta(minutes=1), doses=7),
        sealed_vial(1, FAR_FUTURE),
    ])

    assert manager.draw_dose(1, T0) == 1

    assert store.vials[5].doses_remaining == 7
    assert store.vials[5].state == VialState.OPEN
    assert store.vials[1].state == VialState.OPEN


def test_usable_until_equal_to_now_is_not_usable():
    manager, store = make_manager([
        open_vial(5, T0, doses=7),
        sealed_vial(1, FAR_FUTURE),
    ])

    assert manager.draw_dose(1, T0) == 1


def test_exhausted_open_vial_is_ignored():
    manager, store = make_manager([open_vial(5, T0 + timedelta(hours=2), doses=0)])

    with pytest.raises(OutOfStock):
        manager.draw_dose(1, T0)


# ---------------- DRAW: SEALED SELECTION ----------------

def test_sealed_vial_closest_to_expiry_is_opened_first():
    manager, store = make_manager([
        sealed_vial(1, date(2026, 9, 1)),
        sealed_vial(2, date(2026, 4, 1)),
        sealed_vial(3, date(2026, 6, 1)),
    ])

    assert manager.draw_dose(1, T0) == 2


def test_equal_sealed_expiry_is_broken_by_lowest_id():
    # FakeVialStore returns highest id first
    manager, store = make_manager([
        sealed_vial(8, date(2026, 5, 1)),
        sealed_vial(3, date(2026, 5, 1)),
        sealed_vial(6, date(2026, 5, 1)),
    ])

    assert manager.draw_dose(1, T0) == 3


def test_sealed_vial_expiring_today_is_not_opened():
    manager, store = make_manager([sealed_vial(1, T0.date())])

    with pytest.raises(OutOfStock):
        manager.draw_dose(1, T0)

    assert store.vials[1].state == VialState.SEALED
    assert store.writes == []


def test_vials_of_other_vaccines_are_never_used():
    store = FakeVialStore([sealed_vial(1, FAR_FUTURE, vaccine_id=2)])
    manager = VialInventoryManager(store, catalog_with(vaccine_id=1))

    with pytest.raises(OutOfStock):
        manager.draw_dose(1, T0)


def test_unknown_vaccine_fails_before_touching_stock():
    manager, store = make_manager([sealed_vial(1, FAR_FUTURE, vaccine_id=99)])

    with pytest.raises(UnknownVaccine) as excinfo:
        manager.draw_dose(99, T0)

    assert excinfo.value.vaccine_id == 99
    assert store.writes == []


def test_conflicting_write_propagates_to_the_caller():
    manager, store = make_manager([sealed_vial(1, FAR_FUTURE)])
    store.conflicts.add(1)

    with pytest.raises(ConflictError):
        manager.draw_dose(1, T0)

    assert store.vials[1].state == VialState.SEALED


# ---------------- SCENARIOS ----------------

def test_ten_dose_vial_is_consumed_after_ten_draws_then_out_of_stock():
    manager, store = make_manager([sealed_vial(1, FAR_FUTURE)], doses_per_vial=10, usable_hours=6)

    manager.draw_dose(1, T0)
    vial = store.vials[1]
    assert vial.state == VialState.OPEN
    assert vial.doses_remaining == 9
    assert vial.usable_until == T0 + timedelta(hours=6)

    for minute in range(1, 10):
        assert manager.draw_dose(1, T0 + timedelta(minutes=30 * minute)) == 1

    vial = store.vials[1]
    assert vial.doses_remaining == 0
    assert vial.state == VialState.CONSUMED

    with pytest.raises(OutOfStock):
        manager.draw_dose(1, T0 + timedelta(hours=5))


def test_open_vial_past_its_window_is_not_used_even_before_a_sweep():
    manager, store = make_manager([sealed_vial(1, FAR_FUTURE)], doses_per_vial=10, usable_hours=6)

    manager.draw_dose(1, T0)

    with pytest.raises(OutOfStock):
        manager.draw_dose(1, T0 + timedelta(hours=7))

    assert store.vials[1].doses_remaining == 9
    assert store.vials[1].state == VialState.OPEN


def test_doses_never_go_negative_when_drawing_until_out_of_stock():
    vials = [sealed_vial(i, date(2026, 4, i), doses=3) for i in range(1, 5)]
    manager, store = make_manager(vials, doses_per_vial=3, usable_hours=48)

    draws = 0
    now = T0
    while True:
        try:
            manager.draw_dose(1, now)
        except OutOfStock:
            break
        draws += 1
        now += timedelta(minutes=10)
        assert all(v.doses_remaining >= 0 for v in store.vials.values())

    assert draws == 12
    assert all(v.state == VialState.CONSUMED for v in store.vials.values())
    opened_order = [vial_id for vial_id, state, doses in store.writes if doses == 3]
    assert opened_order == [1, 2, 3, 4]


# ---------------- SWEEP ----------------

def test_sweep_expires_vials_past_their_deadlines():
    manager, store = make_manager([
        sealed_vial(1, T0.date()),
        sealed_vial(2, FAR_FUTURE),
        open_vial(3, T0 - timedelta(hours=1), doses=4),
        open_vial(4, T0 + timedelta(hours=1), doses=4),
        open_vial(5, T0, doses=2),
    ])
    store.vials[6] = Vial(
        id=6, vaccine_id=1, lot="LOT-C", sealed_expiry=date(2026, 1, 1),
        doses_remaining=0, state=VialState.CONSUMED,
    )

    expired = manager.sweep_expired(T0)

    assert expired == [1, 3, 5]
    assert {i for i, v in store.vials.items() if v.state == VialState.EXPIRED} == {1, 3, 5}
    assert store.vials[2].state == VialState.SEALED
    assert store.vials[4].state == VialState.OPEN
    assert store.vials[6].state == VialState.CONSUMED
    # Doses left in the vial stay recorded for the wastage ledger
    assert store.vials[3].doses_remaining == 4


def test_sweep_is_idempotent():
    manager, store = make_manager([
        sealed_vial(1, T0.date()),
        open_vial(2, T0 - timedelta(hours=1)),
    ])

    first = manager.sweep_expired(T0)
    states_after_first = {i: v.state for i, v in store.vials.items()}
    second = manager.sweep_expired(T0)

    assert first == [1, 2]
    assert second == []
    assert {i: v.state for i, v in store.vials.items()} == states_after_first


def test_sweep_can_be_limited_to_one_vaccine():
    manager, store = make_manager([
        sealed_vial(1, T0.date(), vaccine_id=1),
        sealed_vial(2, T0.date(), vaccine_id=2),
    ])

    assert manager.sweep_expired(T0, vaccine_id=2) == [2]
    assert store.vials[1].state == VialState.SEALED


def test_sweep_skips_vials_modified_concurrently():
    manager, store = make_manager([
        sealed_vial(1, T0.date()),
        sealed_vial(2, T0.date()),
    ])
    store.conflicts.add(1)

    assert manager.sweep_expired(T0) == [2]
    assert store.vials[1].state == VialState.SEALED
    assert manager.sweep_expired(T0) == [1]


def test_sweep_hands_each_saved_vial_to_the_callback():
    manager, store = make_manager([
        sealed_vial(1, T0.date()),
        sealed_vial(2, T0.date()),
        sealed_vial(3, T0.date()),
    ])
    store.conflicts.add(2)
    seen = []

    assert manager.sweep_expired(T0, on_expired=seen.append) == [1, 3]
    assert [(v.id, v.state) for v in seen] == [(1, VialState.EXPIRED), (3, VialState.EXPIRED)]


def test_sweep_stops_when_the_callback_fails():
    manager, store = make_manager([
        sealed_vial(1, T0.date()),
        sealed_vial(2, T0.date()),
    ])

    def fail(vial):
        raise RuntimeError("ledger down")

    with pytest.raises(RuntimeError):
        manager.sweep_expired(T0, on_expired=fail)

    assert store.vials[2].state == VialState.SEALED


# ---------------- TRANSITIONS ----------------

def test_vial_cannot_be_opened_twice():
    vial = sealed_vial(1, FAR_FUTURE)
    vial.open(T0, 6)

    with pytest.raises(InvalidVialTransition):
        vial.open(T0 + timedelta(hours=1), 6)

    assert vial.opened_at == T0


def test_sealed_vial_cannot_be_drawn_from_directly():
    with pytest.raises(InvalidVialTransition):
        sealed_vial(1, FAR_FUTURE).draw()


def test_consumed_vial_cannot_expire_and_expired_is_a_no_op():
    consumed = open_vial(1, T0 + timedelta(hours=1), doses=1)
    consumed.draw()
    assert consumed.state == VialState.CONSUMED

    with pytest.raises(InvalidVialTransition):
        consumed.expire()

    expired = sealed_vial(2, FAR_FUTURE)
    assert expired.expire() is True
    assert expired.expire() is False
    assert expired.state == VialState.EXPIRED
