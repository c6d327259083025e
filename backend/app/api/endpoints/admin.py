from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc, or_
from typing import Optional
import logging
from app.core.database import get_db
from app.core.auth import require_admin
from app.core.exceptions import Conflict, NotFound
from app.core.logging_config import log_request_event
from app.core.security import Identity, hash_password
from app.models.article import Article, ArticleStatus
from app.models.user import User
from app.schemas.article import (
    AdminArticleList,
    ArticleResponse,
    ArticleStatusUpdate,
)
from app.schemas.user import UserCreate, UserList, UserResponse, UserRoleUpdate
from app.services import article_policy
from app.api.validation import (
    LimitParam,
    PageParam,
    SearchParam,
    like_pattern,
    paginate,
    today_bounds,
)

# Every route below requires a caller whose current role is ADMIN
router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


# ====== USER MANAGEMENT ======


@router.get("/users", response_model=UserList)
def get_all_users(
    page: int = PageParam,
    limit: int = LimitParam,
    search: str = SearchParam,
    db: Session = Depends(get_db),
):
    """List users, newest first, optionally filtered by name or email."""
    query = db.query(User)
    pattern = like_pattern(search)
    if pattern:
        query = query.filter(
            or_(
                User.name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )

    users, pagination = paginate(query.order_by(desc(User.created_at)), page, limit)
    return {"users": users, "pagination": pagination}


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    payload: UserCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Create a user with any role."""
    if db.query(User.id).filter(User.email == payload.email).first():
        raise Conflict("User with this email already exists")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    db.refresh(user)

    log_request_event(
        request,
        event_type="admin.user.created",
        message="User created by admin",
        user_id=identity.user_id,
        event_category="authorization",
        target_user_id=user.id,
        role=user.role.value,
    )
    return {"message": "User created successfully", "user": user}


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    request: Request,
    user_id: str,
    payload: UserRoleUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """
    Change a user's role.

    Takes effect on the user's next privileged request: sessions already
    issued keep working, but the role check always reads this column.
    """
    user = _get_user(db, user_id)
    previous = user.role
    user.role = payload.role
    db.commit()
    db.refresh(user)

    log_request_event(
        request,
        event_type="admin.user.role_changed",
        message=f"Role changed from {previous.value} to {user.role.value}",
        user_id=identity.user_id,
        event_category="authorization",
        target_user_id=user.id,
    )
    return {"message": "User role updated successfully", "user": user}


@router.patch("/users/{user_id}/toggle", response_model=UserResponse)
def toggle_user_active_status(
    request: Request,
    user_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Activate or deactivate a user account."""
    user = _get_user(db, user_id)
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)

    state = "activated" if user.is_active else "deactivated"
    log_request_event(
        request,
        event_type=f"admin.user.{state}",
        message=f"User {state}",
        user_id=identity.user_id,
        event_category="authorization",
        target_user_id=user.id,
    )
    return {"message": f"User {state}", "user": user}


# ====== ARTICLE MANAGEMENT ======


@router.get("/articles", response_model=AdminArticleList)
def admin_get_all_articles(
    page: int = PageParam,
    limit: int = LimitParam,
    search: str = SearchParam,
    deleted: Optional[bool] = Query(
        None, description="true: only soft-deleted, false: only live, omitted: both"
    ),
    db: Session = Depends(get_db),
):
    """List every article, including drafts and soft-deleted ones."""
    query = db.query(Article).options(
        joinedload(Article.author), joinedload(Article.category)
    )

    pattern = like_pattern(search)
    if pattern:
        query = query.filter(Article.title.ilike(pattern, escape="\\"))

    if deleted is True:
        query = query.filter(Article.deleted_at.isnot(None))
    elif deleted is False:
        query = query.filter(Article.deleted_at.is_(None))

    articles, pagination = paginate(query.order_by(desc(Article.created_at)), page, limit)

    start, end = today_bounds()
    published_today_count = (
        db.query(Article)
        .filter(
            Article.deleted_at.is_(None),
            Article.status == ArticleStatus.PUBLISHED,
            Article.updated_at >= start,
            Article.updated_at < end,
        )
        .count()
    )

    return {
        "articles": articles,
        "pagination": pagination,
        "published_today_count": published_today_count,
    }


@router.patch("/articles/{article_id}/status", response_model=ArticleResponse)
def change_article_status(
    article_id: str,
    payload: ArticleStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Set an article's status."""
    new_status = article_policy.ensure_can_change_status(identity, payload.status)

    article = db.query(Article).filter(Article.id == article_id).first()
    if not article:
        raise NotFound("Article not found")

    article.status = new_status
    db.commit()
    db.refresh(article)
    return {"message": "Article status updated successfully", "article": article}


@router.delete("/articles/{article_id}")
def delete_article_by_admin(
    request: Request,
    article_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Permanently delete an article, whatever its state."""
    article = db.query(Article).filter(Article.id == article_id).first()
    if not article:
        raise NotFound("Article not found")

    article_policy.ensure_can_delete(identity, article, force=True)
    db.delete(article)
    db.commit()

    log_request_event(
        request,
        event_type="article.force_delete",
        message="Article permanently deleted by admin",
        user_id=identity.user_id,
        event_category="data",
        article_id=article_id,
    )
    return {"message": "Article deleted successfully"}
