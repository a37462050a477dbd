from functools import wraps

from flask import g

from utils.errors import AuthRequired, Forbidden

ROLE_INVESTOR = "INVESTOR"
ROLE_ADVISOR = "ADVISOR"
ROLE_ADMIN = "ADMIN"
ALL_ROLES = (ROLE_INVESTOR, ROLE_ADVISOR, ROLE_ADMIN)


def has_role(role_name: str) -> bool:
    user = getattr(g, "user", None)
    return bool(user) and user.has_role(role_name)


def require_roles(*role_names: str):
    """
    @require_roles(ROLE_ADVISOR) on a view; admins pass every check.
    """
    allowed = set(role_names) | {ROLE_ADMIN}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                raise AuthRequired()
            if not allowed.intersection(user.role_names):
                raise Forbidden()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
