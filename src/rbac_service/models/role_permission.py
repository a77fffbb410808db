from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    Uuid,
)

from rbac_service.db import Base, utcnow


class RolePermission(Base):
    """
    A role's weak reference to a permission.

    ``permission_id`` has no foreign key: deleting a permission leaves the
    reference in place, and readers drop it when it no longer resolves.
    """

    __tablename__ = "role_permissions"

    role_id = Column(
        Uuid, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False
    )
    permission_id = Column(Uuid, nullable=False, index=True)
    # Insertion order within the role's permission set
    position = Column(Integer, nullable=False, default=0)
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("role_id", "permission_id", name="role_permissions_pkey"),
    )

    def __repr__(self):
        return f"<RolePermission(role_id='{self.role_id}', permission_id='{self.permission_id}')>"
