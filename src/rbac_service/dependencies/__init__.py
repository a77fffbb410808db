from .app_deps import get_app_settings

__all__ = ["get_app_settings"]
