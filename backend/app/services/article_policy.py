"""
Who may see and change articles.

Every check either returns quietly or raises one of the errors from
``app.core.exceptions``; none of them touch storage.
"""

from typing import Optional

from app.core.config import settings
from app.core.exceptions import Forbidden, InvalidState, InvalidStatus, NotFound
from app.core.security import Identity
from app.models.article import Article, ArticleStatus
from app.models.user import Role

AUTHOR_ROLES = frozenset({Role.REPORTER, Role.EDITOR, Role.ADMIN})
EDITORIAL_ROLES = frozenset({Role.EDITOR, Role.ADMIN})


def is_guest(identity: Optional[Identity]) -> bool:
    """Anonymous callers and plain readers only ever see published articles."""
    return identity is None or identity.role == Role.USER


def restrict_to_published(identity: Optional[Identity], author_id: Optional[str] = None) -> bool:
    """
    Whether a listing for this caller must be limited to PUBLISHED.

    Scoping a guest listing to one author widens it to every status only when
    GUEST_AUTHOR_SCOPE_ALL_STATUSES is enabled.
    """
    if not is_guest(identity):
        return False
    if author_id and settings.GUEST_AUTHOR_SCOPE_ALL_STATUSES:
        return False
    return True


def can_view(identity: Optional[Identity], article: Article) -> bool:
    if article.deleted_at is not None:
        return False
    if is_guest(identity):
        return article.status == ArticleStatus.PUBLISHED
    return True


def ensure_can_create(identity: Identity) -> None:
    if identity.role not in AUTHOR_ROLES:
        raise Forbidden("You are not authorized to create articles")


def ensure_can_update(identity: Identity, article: Article, changes_status: bool = False) -> None:
    if identity.role not in AUTHOR_ROLES:
        raise Forbidden("You are not authorized to update this article")
    if identity.role == Role.REPORTER and article.author_id != identity.user_id:
        raise Forbidden("You are not authorized to update this article")
    if changes_status and identity.role not in EDITORIAL_ROLES:
        raise Forbidden("You are not authorized to update status")


def ensure_can_delete(identity: Identity, article: Article, force: bool = False) -> None:
    """
    Soft delete: owning reporter, any editor or admin. Force delete: admin only.

    A soft delete of an article that is already soft-deleted is an
    InvalidState; a force delete is allowed in either state.
    """
    is_admin = identity.role == Role.ADMIN
    is_owner = identity.role == Role.REPORTER and article.author_id == identity.user_id

    if not (is_admin or is_owner or identity.role == Role.EDITOR):
        raise Forbidden("You are not authorized to delete this article")

    if force:
        if not is_admin:
            raise Forbidden("Only admins can force delete")
        return

    if article.deleted_at is not None:
        raise InvalidState("Article is already soft deleted")


def ensure_can_restore(identity: Identity, article: Optional[Article]) -> None:
    if identity.role != Role.ADMIN:
        raise Forbidden("Only admins can restore articles")
    if article is None or article.deleted_at is None:
        raise NotFound("Article not found or not deleted")


def parse_status(value) -> ArticleStatus:
    """Coerce a requested status into the closed enum."""
    if isinstance(value, ArticleStatus):
        return value
    try:
        return ArticleStatus(str(value).upper())
    except ValueError:
        raise InvalidStatus(
            details={"allowed": [status.value for status in ArticleStatus]}
        )


def ensure_can_change_status(identity: Identity, value) -> ArticleStatus:
    if identity.role not in EDITORIAL_ROLES:
        raise Forbidden("You are not authorized to update status")
    return parse_status(value)
