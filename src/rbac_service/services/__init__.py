from . import permission_service, role_service, user_service

__all__ = ["permission_service", "role_service", "user_service"]
