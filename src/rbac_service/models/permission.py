import uuid

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint, Uuid

from rbac_service.db import Base, utcnow


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(String(50), nullable=False, index=True)  # e.g. "read"
    resource = Column(String(50), nullable=False, index=True)  # e.g. "users"
    description = Column(String(300), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("action", "resource", name="uq_permissions_action_resource"),
    )

    def __repr__(self):
        return f"<Permission(id='{self.id}', action='{self.action}', resource='{self.resource}')>"
