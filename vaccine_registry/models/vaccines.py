# vaccine_registry/models/vaccines.py

from sqlalchemy import CheckConstraint, Column, Integer, String

from vaccine_registry.database import Base


class Vaccine(Base):
    __tablename__ = "vaccines"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)

    doses_per_vial = Column(Integer, nullable=False)
    # Hours a vial stays usable after it is first opened
    usable_hours = Column(Integer, nullable=False)

    target_group = Column(String, nullable=True)  # child | childbearing | pregnant | postpartum | adult | hpv
    schedule_doses = Column(Integer, nullable=False, default=1)
    min_age_months = Column(Integer, nullable=False, default=0)
    max_age_months = Column(Integer, nullable=False, default=1200)

    __table_args__ = (
        CheckConstraint("doses_per_vial > 0", name="ck_vaccines_doses_per_vial_positive"),
        CheckConstraint("usable_hours > 0", name="ck_vaccines_usable_hours_positive"),
        CheckConstraint("schedule_doses > 0", name="ck_vaccines_schedule_doses_positive"),
    )
