# vaccine_registry/models/users.py

from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime
from sqlalchemy.sql import func

from vaccine_registry.database import Base

ROLES = ("admin", "nurse")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False)

    # "admin" manages users, the catalog and stock; "nurse" administers doses
    role = Column(String, nullable=False, default="nurse")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'nurse')", name="ck_users_role"),
    )
