# vaccine_registry/models/wastage.py

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from vaccine_registry.database import Base

WASTAGE_REASONS = ("usable_window_elapsed", "shelf_life_expired", "other")


class Wastage(Base):
    __tablename__ = "wastage"

    id = Column(Integer, primary_key=True, index=True)
    vial_id = Column(Integer, ForeignKey("vials.id"), nullable=False, index=True)

    doses_wasted = Column(Integer, nullable=False)
    reason = Column(String, nullable=False)
    recorded_at = Column(DateTime, nullable=False, index=True)

    vial = relationship("Vial")

    __table_args__ = (
        CheckConstraint("doses_wasted >= 0", name="ck_wastage_doses_non_negative"),
        CheckConstraint(
            "reason IN ('usable_window_elapsed', 'shelf_life_expired', 'other')",
            name="ck_wastage_reason",
        ),
    )
