# vaccine_registry/models/vials.py

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from vaccine_registry.database import Base


class Vial(Base):
    __tablename__ = "vials"

    id = Column(Integer, primary_key=True, index=True)
    vaccine_id = Column(Integer, ForeignKey("vaccines.id"), nullable=False)
    lot = Column(String, nullable=False)

    sealed_expiry = Column(Date, nullable=False)
    doses_remaining = Column(Integer, nullable=False)
    state = Column(String, nullable=False, default="sealed")

    opened_at = Column(DateTime, nullable=True)
    usable_until = Column(DateTime, nullable=True)
    received_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Optimistic concurrency: every write must match and bump this
    version = Column(Integer, nullable=False, default=0)

    vaccine = relationship("Vaccine")

    __table_args__ = (
        Index("ix_vials_vaccine_state", "vaccine_id", "state"),
        CheckConstraint("doses_remaining >= 0", name="ck_vials_doses_non_negative"),
        CheckConstraint(
            "state IN ('sealed', 'open', 'consumed', 'expired')",
            name="ck_vials_state",
        ),
    )
