from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    Uuid,
)

from rbac_service.db import Base, utcnow


class UserRole(Base):
    """A user's weak reference to a role (``role_id`` may dangle)."""

    __tablename__ = "user_roles"

    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role_id = Column(Uuid, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("user_id", "role_id", name="user_roles_pkey"),
    )

    def __repr__(self):
        return f"<UserRole(user_id='{self.user_id}', role_id='{self.role_id}')>"
