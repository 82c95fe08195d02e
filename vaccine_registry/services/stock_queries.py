# vaccine_registry/services/stock_queries.py
#
# Read-only stock aggregates shared by the stock, dashboard
# and alert endpoints.

from datetime import datetime

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.vials import Vial


def low_stock_vaccines(db: Session, now: datetime, threshold: int):
    """Vaccines with fewer than ``threshold`` sealed vials that can still be opened."""
    sealed_count = func.count(Vial.id).label("sealed_vials")

    return (
        db.query(
            Vaccine.id.label("vaccine_id"),
            Vaccine.name.label("vaccine_name"),
            sealed_count,
        )
        .outerjoin(
            Vial,
            and_(
                Vial.vaccine_id == Vaccine.id,
                Vial.state == "sealed",
                Vial.sealed_expiry > now.date(),
                Vial.doses_remaining > 0,
            ),
        )
        .group_by(Vaccine.id, Vaccine.name)
        .having(sealed_count < threshold)
        .order_by(Vaccine.name.asc())
        .all()
    )


def open_vials_with_doses(db: Session):
    return (
        db.query(Vial, Vaccine.name)
        .join(Vaccine, Vial.vaccine_id == Vaccine.id)
        .filter(Vial.state == "open", Vial.doses_remaining > 0)
        .order_by(Vial.usable_until.asc(), Vial.id.asc())
    )
