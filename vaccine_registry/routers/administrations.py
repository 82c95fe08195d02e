# =========================================================
# ADMINISTRATIONS ROUTER
#
# Drawing a dose and recording it are two separate concerns:
# - The inventory manager picks/opens a vial and decrements it
# - This router records the administration against that vial
#
# Draws are serialized per vaccine; a write conflict is
# retried once from the top, since another request may
# already have opened a vial.
# =========================================================

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_current_user
from vaccine_registry.core.rate_limiter import limiter
from vaccine_registry.models.administrations import Administration
from vaccine_registry.models.patients import Patient
from vaccine_registry.schemas.administration import AdministrationCreate, AdministrationResponse
from vaccine_registry.services.locks import inventory_locks
from vaccine_registry.services.vial_inventory import (
    ConflictError,
    OutOfStock,
    UnknownVaccine,
    VialInventoryManager,
)
from vaccine_registry.services.vial_store import SqlVaccineCatalog, SqlVialStore
from vaccine_registry.utils.datetime_utils import day_bounds, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/administrations", tags=["Administrations"])

DRAW_ATTEMPTS = 2


def draw_with_retry(manager: VialInventoryManager, vaccine_id: int, now) -> int:
    for attempt in range(1, DRAW_ATTEMPTS + 1):
        try:
            return manager.draw_dose(vaccine_id, now)
        except ConflictError as exc:
            if attempt == DRAW_ATTEMPTS:
                raise
            logger.warning("Draw for vaccine %s conflicted on vial %s, retrying", vaccine_id, exc.vial_id)


# =========================================================
# ADMINISTER ONE DOSE
# =========================================================
@router.post("", response_model=AdministrationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
def administer_dose(
    request: Request,
    data: AdministrationCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    patient = db.query(Patient).filter(Patient.id == data.patient_id).first()

    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    manager = VialInventoryManager(SqlVialStore(db), SqlVaccineCatalog(db))
    now = utc_now()

    with inventory_locks.for_vaccine(data.vaccine_id):
        try:
            vial_id = draw_with_retry(manager, data.vaccine_id, now)

        except UnknownVaccine:
            raise HTTPException(status_code=404, detail="Vaccine not found")

        except OutOfStock:
            raise HTTPException(
                status_code=400,
                detail="No stock available for this vaccine",
            )

        except ConflictError:
            raise HTTPException(
                status_code=409,
                detail="Stock changed while drawing the dose, please try again",
            )

        # Still under the vaccine lock so dose numbers stay unique
        previous_doses = (
            db.query(func.count(Administration.id))
            .filter(
                Administration.patient_id == patient.id,
                Administration.vaccine_id == data.vaccine_id,
            )
            .scalar()
        )

        administration = Administration(
            patient_id=patient.id,
            vaccine_id=data.vaccine_id,
            vial_id=vial_id,
            user_id=current_user.id,
            dose_number=previous_doses + 1,
            administered_at=now,
            notes=data.notes,
        )

        try:
            db.add(administration)
            db.commit()
            db.refresh(administration)

        except SQLAlchemyError:
            db.rollback()
            logger.exception("Dose drawn from vial %s but administration was not recorded", vial_id)
            raise HTTPException(status_code=500, detail="Unable to record administration")

    logger.info(
        "Administered vaccine %s dose %s to patient %s from vial %s",
        data.vaccine_id, administration.dose_number, patient.id, vial_id,
    )

    return administration


# =========================================================
# LIST ONE DAY
# =========================================================
@router.get("", response_model=list[AdministrationResponse])
def list_administrations(
    day: date | None = Query(None, description="Defaults to today (UTC)"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    day = day or utc_now().date()
    start_dt, end_dt = day_bounds(day, day)

    return (
        db.query(Administration)
        .filter(Administration.administered_at.between(start_dt, end_dt))
        .order_by(Administration.administered_at.desc(), Administration.id.desc())
        .all()
    )
