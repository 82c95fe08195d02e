# =========================================================
# STOCK ROUTER
#
# - Receiving sealed vials (one row per physical vial)
# - Stock overview, open vials, receipt history
# - Alerts: open vials close to their usable deadline,
#   vaccines running low on sealed vials
# - Manual expiry sweep and hand discards (admin)
# =========================================================

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_admin_user, get_current_user
from vaccine_registry.core.config import settings
from vaccine_registry.models.administrations import Administration
from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.vials import Vial
from vaccine_registry.models.wastage import Wastage
from vaccine_registry.schemas.stock import (
    LowStockAlert,
    StockAlertsResponse,
    StockEntryCreate,
    StockEntryResponse,
    StockSummaryResponse,
    SweepResponse,
    VialResponse,
    VialWithVaccineResponse,
)
from vaccine_registry.services.locks import inventory_locks
from vaccine_registry.services.maintenance import discard_vial, run_sweep
from vaccine_registry.services.vial_inventory import ConflictError, InvalidVialTransition
from vaccine_registry.services.stock_queries import low_stock_vaccines, open_vials_with_doses
from vaccine_registry.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["Stock"])


def _with_vaccine_name(rows) -> list[VialWithVaccineResponse]:
    return [
        VialWithVaccineResponse(
            **VialResponse.model_validate(vial).model_dump(),
            vaccine_name=vaccine_name,
        )
        for vial, vaccine_name in rows
    ]


# =========================================================
# STOCK OVERVIEW
# =========================================================
@router.get("", response_model=list[StockSummaryResponse])
def stock_summary(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = (
        db.query(
            Vaccine.id.label("vaccine_id"),
            Vaccine.name.label("vaccine_name"),
            func.coalesce(func.sum(case((Vial.state == "sealed", 1), else_=0)), 0).label("sealed_vials"),
            func.coalesce(func.sum(case((Vial.state == "open", 1), else_=0)), 0).label("open_vials"),
            func.min(case((Vial.state == "sealed", Vial.sealed_expiry), else_=None)).label("nearest_sealed_expiry"),
        )
        .outerjoin(Vial, Vial.vaccine_id == Vaccine.id)
        .group_by(Vaccine.id, Vaccine.name)
        .order_by(Vaccine.name.asc())
        .all()
    )

    return [
        StockSummaryResponse(
            vaccine_id=row.vaccine_id,
            vaccine_name=row.vaccine_name,
            sealed_vials=row.sealed_vials,
            open_vials=row.open_vials,
            nearest_sealed_expiry=row.nearest_sealed_expiry,
        )
        for row in rows
    ]


@router.get("/open", response_model=list[VialWithVaccineResponse])
def list_open_vials(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return _with_vaccine_name(open_vials_with_doses(db).all())


# =========================================================
# RECEIVE SEALED VIALS
# =========================================================
@router.post("/entries", response_model=StockEntryResponse, status_code=status.HTTP_201_CREATED)
def receive_vials(
    entry: StockEntryCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    vaccine = db.query(Vaccine).filter(Vaccine.id == entry.vaccine_id).first()

    if not vaccine:
        raise HTTPException(status_code=404, detail="Vaccine not found")

    now = utc_now()

    if entry.sealed_expiry <= now.date():
        raise HTTPException(
            status_code=400,
            detail="Cannot receive vials that are already past their expiry date",
        )

    vials = [
        Vial(
            vaccine_id=vaccine.id,
            lot=entry.lot,
            sealed_expiry=entry.sealed_expiry,
            doses_remaining=vaccine.doses_per_vial,
            state="sealed",
            received_at=now,
        )
        for _ in range(entry.quantity)
    ]

    try:
        db.add_all(vials)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to record stock entry")

    logger.info(
        "Received %d vial(s) of %s, lot %s",
        entry.quantity, vaccine.name, entry.lot,
    )

    return StockEntryResponse(
        vaccine_id=vaccine.id,
        lot=entry.lot,
        vial_ids=[vial.id for vial in vials],
    )


@router.get("/history", response_model=list[VialWithVaccineResponse])
def stock_history(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = (
        db.query(Vial, Vaccine.name)
        .join(Vaccine, Vial.vaccine_id == Vaccine.id)
        .order_by(Vial.received_at.desc(), Vial.id.desc())
        .limit(100)
        .all()
    )

    return _with_vaccine_name(rows)


# =========================================================
# ALERTS
# =========================================================
@router.get("/alerts", response_model=StockAlertsResponse)
def stock_alerts(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    now = utc_now()
    horizon = now + timedelta(hours=settings.EXPIRING_SOON_HOURS)

    expiring = (
        open_vials_with_doses(db)
        .filter(Vial.usable_until > now, Vial.usable_until <= horizon)
        .all()
    )

    low_stock = low_stock_vaccines(db, now, settings.LOW_STOCK_VIAL_THRESHOLD)

    return StockAlertsResponse(
        expiring_open_vials=_with_vaccine_name(expiring),
        low_stock=[
            LowStockAlert(
                vaccine_id=row.vaccine_id,
                vaccine_name=row.vaccine_name,
                sealed_vials=row.sealed_vials,
            )
            for row in low_stock
        ],
    )


# =========================================================
# MAINTENANCE
# =========================================================
@router.post("/sweep", response_model=SweepResponse)
def sweep_expired_vials(
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    expired = run_sweep(db, inventory_locks, utc_now())
    return SweepResponse(expired_vial_ids=expired)


@router.post("/{vial_id}/discard", response_model=VialResponse)
def discard_stock_vial(
    vial_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    try:
        discard_vial(db, inventory_locks, vial_id, utc_now())

    except LookupError:
        raise HTTPException(status_code=404, detail="Vial not found")

    except InvalidVialTransition as exc:
        raise HTTPException(
            status_code=400,
            detail=f"Vial is already {exc.state.value} and cannot be discarded",
        )

    except ConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vial changed while discarding it, please try again",
        )

    return db.query(Vial).filter(Vial.id == vial_id).first()


@router.delete("/{vial_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vial(
    vial_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    vial = db.query(Vial).filter(Vial.id == vial_id).first()

    if not vial:
        raise HTTPException(status_code=404, detail="Vial not found")

    with inventory_locks.for_vaccine(vial.vaccine_id):
        if db.query(Administration).filter(Administration.vial_id == vial.id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a vial with recorded administrations",
            )

        try:
            db.query(Wastage).filter(Wastage.vial_id == vial.id).delete()
            db.delete(vial)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a vial with recorded administrations",
            )

    return None
