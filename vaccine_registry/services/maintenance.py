# =========================================================
# STOCK MAINTENANCE JOB
#
# Expires vials past their shelf life or usable window and
# records the lost doses in the wastage ledger.
# Runs vaccine by vaccine under that vaccine's lock.
# A vial's expiry and its wastage row commit together.
# =========================================================

import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from vaccine_registry.database import SessionLocal
from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.wastage import Wastage
from vaccine_registry.services.locks import InventoryLocks
from vaccine_registry.services.vial_inventory import (
    InvalidVialTransition,
    Vial,
    VialInventoryManager,
)
from vaccine_registry.services.vial_store import SqlVaccineCatalog, SqlVialStore
from vaccine_registry.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def _wastage_for(vial: Vial, reason: str, now: datetime) -> Wastage:
    return Wastage(
        vial_id=vial.id,
        doses_wasted=vial.doses_remaining,
        reason=reason,
        recorded_at=now,
    )


def run_sweep(db: Session, locks: InventoryLocks, now: datetime) -> list[int]:
    store = SqlVialStore(db, autocommit=False)
    manager = VialInventoryManager(store, SqlVaccineCatalog(db))

    def record_wastage(vial: Vial):
        reason = "shelf_life_expired" if vial.opened_at is None else "usable_window_elapsed"
        db.add(_wastage_for(vial, reason, now))
        db.commit()

    vaccine_ids = [row.id for row in db.query(Vaccine.id).order_by(Vaccine.id).all()]

    expired_ids = []

    for vaccine_id in vaccine_ids:
        with locks.for_vaccine(vaccine_id):
            try:
                swept = manager.sweep_expired(
                    now, vaccine_id=vaccine_id, on_expired=record_wastage
                )
            except Exception:
                db.rollback()
                raise

            expired_ids.extend(swept)

    return expired_ids


def discard_vial(db: Session, locks: InventoryLocks, vial_id: int, now: datetime) -> Vial:
    """Take a sealed or open vial out of stock by hand (broken, cold chain
    failure, ...) and book its remaining doses as wastage with reason ``other``.

    Raises LookupError if the vial does not exist and InvalidVialTransition
    if it is already consumed or expired.
    """
    store = SqlVialStore(db, autocommit=False)

    vial = store.get_vial(vial_id)
    if vial is None:
        raise LookupError(vial_id)

    with locks.for_vaccine(vial.vaccine_id):
        # Re-read under the lock
        vial = store.get_vial(vial_id)

        if not vial.expire():
            raise InvalidVialTransition(vial.id, vial.state, "discard")

        try:
            store.save_vial(vial)
            db.add(_wastage_for(vial, "other", now))
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info(
        "Vial %s (vaccine %s) discarded, %d dose(s) wasted",
        vial.id, vial.vaccine_id, vial.doses_remaining,
    )
    return vial


async def periodic_sweep(locks: InventoryLocks, interval_minutes: int):
    """Background loop started from the app lifespan."""

    def _sweep_once():
        db = SessionLocal()
        try:
            return run_sweep(db, locks, utc_now())
        finally:
            db.close()

    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            expired = await asyncio.to_thread(_sweep_once)
            logger.info("Scheduled sweep expired %d vial(s)", len(expired))
        except Exception:
            logger.exception("Scheduled stock sweep failed")
