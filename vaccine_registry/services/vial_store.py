# vaccine_registry/services/vial_store.py
#
# SQLAlchemy adapters for the inventory manager's collaborators.
# By default every save_vial is its own committed transaction.
# With autocommit=False the caller owns the commit, so other rows
# can land in the same transaction as the state change.

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.vials import Vial as VialRow
from vaccine_registry.services.vial_inventory import (
    ConflictError,
    VaccineInfo,
    Vial,
    VialState,
)

ORDERINGS = {
    "usable_until": (VialRow.usable_until.asc(), VialRow.id.asc()),
    "sealed_expiry": (VialRow.sealed_expiry.asc(), VialRow.id.asc()),
    None: (VialRow.id.asc(),),
}


def to_domain(row: VialRow) -> Vial:
    return Vial(
        id=row.id,
        vaccine_id=row.vaccine_id,
        lot=row.lot,
        sealed_expiry=row.sealed_expiry,
        doses_remaining=row.doses_remaining,
        state=VialState(row.state),
        opened_at=row.opened_at,
        usable_until=row.usable_until,
        received_at=row.received_at,
        version=row.version,
    )


class SqlVaccineCatalog:
    def __init__(self, db: Session):
        self.db = db

    def get_vaccine_info(self, vaccine_id: int) -> Optional[VaccineInfo]:
        vaccine = self.db.query(Vaccine).filter(Vaccine.id == vaccine_id).first()

        if not vaccine:
            return None

        return VaccineInfo(
            doses_per_vial=vaccine.doses_per_vial,
            usable_hours=vaccine.usable_hours,
        )


class SqlVialStore:
    def __init__(self, db: Session, autocommit: bool = True):
        self.db = db
        self.autocommit = autocommit

    def find_vials(
        self,
        vaccine_id: Optional[int],
        state: VialState,
        order_by: Optional[str] = None,
    ) -> list[Vial]:
        query = self.db.query(VialRow).filter(VialRow.state == state.value)

        if vaccine_id is not None:
            query = query.filter(VialRow.vaccine_id == vaccine_id)

        if order_by not in ORDERINGS:
            raise ValueError(f"Unsupported vial ordering: {order_by}")

        return [to_domain(row) for row in query.order_by(*ORDERINGS[order_by]).all()]

    def get_vial(self, vial_id: int) -> Optional[Vial]:
        row = self.db.query(VialRow).filter(VialRow.id == vial_id).first()
        return to_domain(row) if row else None

    def save_vial(self, vial: Vial) -> None:
        result = self.db.execute(
            update(VialRow)
            .where(
                VialRow.id == vial.id,
                VialRow.version == vial.version,
            )
            .values(
                doses_remaining=vial.doses_remaining,
                state=vial.state.value,
                opened_at=vial.opened_at,
                usable_until=vial.usable_until,
                version=vial.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            # The UPDATE matched nothing; a caller-owned transaction stays intact
            if self.autocommit:
                self.db.rollback()
            raise ConflictError(vial.id)

        if self.autocommit:
            self.db.commit()
        vial.version += 1
