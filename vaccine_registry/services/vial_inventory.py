# =========================================================
# VIAL INVENTORY MANAGER
#
# Decides which vial a dose is drawn from:
# - An already open, still usable vial always wins
#   (soonest usable_until first, then lowest id)
# - Otherwise the sealed vial closest to its shelf-life expiry
#   is opened (first-expiry-first-out, then lowest id)
# - Opening and decrementing are two separate persisted writes
#
# Callers must serialize draw_dose per vaccine (see locks.py).
# =========================================================

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class VialState(str, enum.Enum):
    SEALED = "sealed"
    OPEN = "open"
    CONSUMED = "consumed"
    EXPIRED = "expired"


# ---------------- ERRORS ----------------

class InventoryError(Exception):
    """Base class for vial inventory failures."""


class UnknownVaccine(InventoryError):
    def __init__(self, vaccine_id: int):
        self.vaccine_id = vaccine_id
        super().__init__(f"Vaccine {vaccine_id} is not in the catalog")


class OutOfStock(InventoryError):
    def __init__(self, vaccine_id: int):
        self.vaccine_id = vaccine_id
        super().__init__(f"No usable vial in stock for vaccine {vaccine_id}")


class ConflictError(InventoryError):
    """The stored vial changed since it was read."""

    def __init__(self, vial_id: int):
        self.vial_id = vial_id
        super().__init__(f"Vial {vial_id} was modified concurrently")


class InvalidVialTransition(InventoryError):
    def __init__(self, vial_id: int, state: VialState, action: str):
        self.vial_id = vial_id
        self.state = state
        super().__init__(f"Cannot {action} vial {vial_id} in state '{state.value}'")


# ---------------- DOMAIN TYPES ----------------

@dataclass(frozen=True)
class VaccineInfo:
    doses_per_vial: int
    usable_hours: int


@dataclass
class Vial:
    """In-memory vial record.

    Invariants:
    - ``doses_remaining`` is never negative
    - ``opened_at`` and ``usable_until`` are set together, once
    """

    id: int
    vaccine_id: int
    lot: str
    sealed_expiry: date
    doses_remaining: int
    state: VialState = VialState.SEALED
    opened_at: Optional[datetime] = None
    usable_until: Optional[datetime] = None
    received_at: Optional[datetime] = None
    version: int = 0

    def is_usable_open(self, now: datetime) -> bool:
        return (
            self.state == VialState.OPEN
            and self.doses_remaining > 0
            and self.usable_until is not None
            and self.usable_until > now
        )

    def is_openable(self, now: datetime) -> bool:
        return (
            self.state == VialState.SEALED
            and self.doses_remaining > 0
            and self.sealed_expiry > now.date()
        )

    def is_past_deadline(self, now: datetime) -> bool:
        if self.state == VialState.SEALED:
            return self.sealed_expiry <= now.date()
        if self.state == VialState.OPEN:
            return (
                self.doses_remaining > 0
                and self.usable_until is not None
                and self.usable_until <= now
            )
        return False

    def open(self, now: datetime, usable_hours: int) -> None:
        if self.state != VialState.SEALED or self.opened_at is not None:
            raise InvalidVialTransition(self.id, self.state, "open")

        self.opened_at = now
        self.usable_until = now + timedelta(hours=usable_hours)
        self.state = VialState.OPEN

    def draw(self) -> None:
        """Remove one dose. The vial is consumed when it hits zero."""
        if self.state != VialState.OPEN or self.doses_remaining <= 0:
            raise InvalidVialTransition(self.id, self.state, "draw a dose from")

        self.doses_remaining -= 1
        if self.doses_remaining == 0:
            self.state = VialState.CONSUMED

    def expire(self) -> bool:
        """Retire the vial. Returns False if it was already expired."""
        if self.state == VialState.EXPIRED:
            return False
        if self.state == VialState.CONSUMED:
            raise InvalidVialTransition(self.id, self.state, "expire")

        self.state = VialState.EXPIRED
        return True


# ---------------- COLLABORATORS ----------------

class VaccineCatalog(Protocol):
    def get_vaccine_info(self, vaccine_id: int) -> Optional[VaccineInfo]:
        ...


class VialStore(Protocol):
    def find_vials(
        self,
        vaccine_id: Optional[int],
        state: VialState,
        order_by: Optional[str] = None,
    ) -> list[Vial]:
        ...

    def get_vial(self, vial_id: int) -> Optional[Vial]:
        ...

    def save_vial(self, vial: Vial) -> None:
        """Persist the vial or raise ConflictError. Bumps ``vial.version``."""
        ...


# ---------------- SELECTION ----------------

def pick_open_vial(vials: list[Vial], now: datetime) -> Optional[Vial]:
    usable = [v for v in vials if v.is_usable_open(now)]
    if not usable:
        return None
    return min(usable, key=lambda v: (v.usable_until, v.id))


def pick_sealed_vial(vials: list[Vial], now: datetime) -> Optional[Vial]:
    openable = [v for v in vials if v.is_openable(now)]
    if not openable:
        return None
    return min(openable, key=lambda v: (v.sealed_expiry, v.id))


# ---------------- MANAGER ----------------

class VialInventoryManager:
    def __init__(self, store: VialStore, catalog: VaccineCatalog):
        self.store = store
        self.catalog = catalog

    def draw_dose(self, vaccine_id: int, now: datetime) -> int:
        info = self.catalog.get_vaccine_info(vaccine_id)
        if info is None:
            raise UnknownVaccine(vaccine_id)

        vial = pick_open_vial(
            self.store.find_vials(vaccine_id, VialState.OPEN, order_by="usable_until"),
            now,
        )

        if vial is None:
            vial = pick_sealed_vial(
                self.store.find_vials(vaccine_id, VialState.SEALED, order_by="sealed_expiry"),
                now,
            )
            if vial is None:
                raise OutOfStock(vaccine_id)

            # Commit point: once this write lands the decrement below must follow
            vial.open(now, info.usable_hours)
            self.store.save_vial(vial)
            logger.info(
                "Opened vial %s (vaccine %s, lot %s), usable until %s",
                vial.id, vaccine_id, vial.lot, vial.usable_until,
            )

        vial.draw()
        self.store.save_vial(vial)

        if vial.state == VialState.CONSUMED:
            logger.info("Vial %s consumed (vaccine %s)", vial.id, vaccine_id)

        return vial.id

    def sweep_expired(
        self,
        now: datetime,
        vaccine_id: Optional[int] = None,
        on_expired: Optional[Callable[[Vial], None]] = None,
    ) -> list[int]:
        """Expire every sealed or open vial past its deadline.

        ``on_expired`` runs right after each vial's write, before the next
        vial is looked at. Errors it raises abort the sweep.
        """
        candidates = self.store.find_vials(vaccine_id, VialState.SEALED)
        candidates += self.store.find_vials(vaccine_id, VialState.OPEN)

        expired_ids = []

        for vial in sorted(candidates, key=lambda v: v.id):
            if not vial.is_past_deadline(now):
                continue

            vial.expire()
            try:
                self.store.save_vial(vial)
            except ConflictError:
                logger.warning("Skipping vial %s during sweep: modified concurrently", vial.id)
                continue

            if on_expired is not None:
                on_expired(vial)
            expired_ids.append(vial.id)

        if expired_ids:
            logger.info("Expired %d vial(s): %s", len(expired_ids), expired_ids)

        return expired_ids
