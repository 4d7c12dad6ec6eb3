"""Authorization rules.

Every predicate takes the acting role (and, where ownership matters, the
names involved) and is evaluated fresh on each action. The ``require_*``
helpers raise the matching error when a predicate fails.
"""
from models import Role, Session, Post
from errors import GuestForbidden, RoleForbidden, Forbidden


def is_authenticated(role: Role) -> bool:
    match role:
        case Role.GUEST:
            return False
        case Role.USER | Role.ORGANIZER | Role.ADMIN:
            return True
    raise ValueError(f"Unknown role: {role!r}")


def can_create_post(role: Role) -> bool:
    return is_authenticated(role)


def can_delete_post(role: Role, actor_name: str, author_name: str) -> bool:
    # Ownership is by display name.
    match role:
        case Role.ADMIN:
            return True
        case Role.GUEST:
            return False
        case Role.USER | Role.ORGANIZER:
            return actor_name == author_name
    raise ValueError(f"Unknown role: {role!r}")


def can_create_event(role: Role) -> bool:
    match role:
        case Role.ORGANIZER:
            return True
        case Role.GUEST | Role.USER | Role.ADMIN:
            return False
    raise ValueError(f"Unknown role: {role!r}")


def can_join_event(role: Role) -> bool:
    return is_authenticated(role)


def can_create_resource(role: Role) -> bool:
    return is_authenticated(role)


def can_moderate(role: Role) -> bool:
    """Ban toggling and the admin panel."""
    match role:
        case Role.ADMIN:
            return True
        case Role.GUEST | Role.USER | Role.ORGANIZER:
            return False
    raise ValueError(f"Unknown role: {role!r}")


def persists_hobbies(role: Role) -> bool:
    """Whether a hobby selection is written back to the account."""
    return is_authenticated(role)


def require_authenticated(session: Session, action: str):
    if not is_authenticated(session.role):
        raise GuestForbidden(f"Guest cannot {action}!")


def require_post_delete(session: Session, post: Post):
    if not can_delete_post(session.role, session.name, post.author):
        raise Forbidden("Not allowed!")


def require_organizer(session: Session):
    if not can_create_event(session.role):
        raise RoleForbidden("Only organizer can create events!")


def require_admin(session: Session):
    if not can_moderate(session.role):
        raise RoleForbidden("Admin access required")
