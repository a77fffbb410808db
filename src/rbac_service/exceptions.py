"""
Reportable error conditions raised by the service layer.

Every error carries a stable machine-checkable ``kind`` and the HTTP status
the boundary handler in ``rbac_service.main`` maps it to. Store failures are
not wrapped here: ``sqlalchemy.exc.SQLAlchemyError`` propagates unchanged and
is reported generically at the boundary.
"""
from typing import Any, Dict, Optional

from fastapi import status


class RBACServiceError(Exception):
    kind: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(RBACServiceError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def for_entity(cls, entity: str, identifier: Any) -> "NotFoundError":
        return cls(f"{entity} with ID '{identifier}' not found")


class ConflictError(RBACServiceError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidInputError(RBACServiceError):
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
