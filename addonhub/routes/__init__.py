from . import addons, admin, auth, users

__all__ = ["addons", "admin", "auth", "users"]
