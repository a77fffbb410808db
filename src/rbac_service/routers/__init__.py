from . import (
    permission_routes,
    role_permission_routes,
    role_routes,
    user_role_routes,
    user_routes,
)

__all__ = [
    "permission_routes",
    "role_permission_routes",
    "role_routes",
    "user_role_routes",
    "user_routes",
]
