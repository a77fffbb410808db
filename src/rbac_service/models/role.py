import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from rbac_service.db import Base, utcnow


class Role(Base):
    __tablename__ = "roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Resolved permission set, in insertion order. The inner join drops
    # references to permissions that no longer exist. Writes go through
    # RolePermission rows, never through this collection.
    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        primaryjoin="Role.id == foreign(RolePermission.role_id)",
        secondaryjoin="Permission.id == foreign(RolePermission.permission_id)",
        order_by="RolePermission.position",
        viewonly=True,
        lazy="raise",
    )

    def __repr__(self):
        return f"<Role(id='{self.id}', name='{self.name}')>"
