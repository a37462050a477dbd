from models import db
from models.user import Role
from security.rbac import ALL_ROLES


def seed_roles() -> int:
    """Insert any missing role rows; returns how many were created."""
    existing = {name for (name,) in db.session.query(Role.name)}
    missing = [name for name in ALL_ROLES if name not in existing]
    db.session.add_all(Role(name=name) for name in missing)
    db.session.commit()
    return len(missing)


def grant_role(user, role_name: str) -> bool:
    """Attach ``role_name`` to ``user``. False when they already had it."""
    role = Role.query.filter_by(name=role_name).first()
    if role is None:
        role = Role(name=role_name)
        db.session.add(role)
    if role in user.roles:
        return False
    user.roles.append(role)
    db.session.commit()
    return True
