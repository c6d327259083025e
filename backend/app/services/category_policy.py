"""
Who may change categories. Reads are public and need no check.
"""

from app.core.exceptions import Forbidden, InvalidState
from app.core.security import Identity
from app.models.category import Category
from app.models.user import Role

CATEGORY_MANAGER_ROLES = frozenset({Role.EDITOR, Role.ADMIN})


def ensure_can_manage(identity: Identity) -> None:
    if identity.role not in CATEGORY_MANAGER_ROLES:
        raise Forbidden("You are not authorized to manage categories")


def ensure_can_delete(identity: Identity, category: Category) -> None:
    ensure_can_manage(identity)
    if not category.is_active:
        raise InvalidState("Category is already deleted")
