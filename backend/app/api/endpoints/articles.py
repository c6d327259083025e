from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc, or_
from sqlalchemy.exc import IntegrityError
from typing import Optional
from datetime import datetime
import logging
from app.core.database import get_db
from app.core.auth import (
    optional_live_session,
    require_admin,
    require_author_roles,
    require_editorial_roles,
)
from app.core.exceptions import Conflict, NotFound, ValidationFailed
from app.core.logging_config import log_request_event
from app.core.security import Identity
from app.models.article import Article, ArticleStatus
from app.models.category import Category
from app.models.user import User
from app.schemas.article import (
    ArticleCreate,
    ArticleDeleteResponse,
    ArticleDetail,
    ArticleList,
    ArticleResponse,
    ArticleStatusUpdate,
    ArticleUpdate,
)
from app.services import article_policy
from app.services.slugs import unique_slug
from app.api.validation import (
    LimitParam,
    PageParam,
    SearchParam,
    by_slug_or_id,
    like_pattern,
    paginate,
    today_bounds,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_article(db: Session, identifier: str, include_deleted: bool = False) -> Article:
    query = by_slug_or_id(db.query(Article), Article, identifier)
    if not include_deleted:
        query = query.filter(Article.deleted_at.is_(None))
    article = query.first()
    if not article:
        raise NotFound("Article not found")
    return article


def _ensure_category(db: Session, category_id: Optional[str]) -> None:
    if category_id is None:
        return
    exists = (
        db.query(Category.id)
        .filter(Category.id == category_id, Category.is_active == True)
        .first()
    )
    if not exists:
        raise NotFound("Category not found")


def _commit(db: Session, message: str) -> None:
    """Commit, mapping a unique-constraint race to a Conflict."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(message)


@router.get("/", response_model=ArticleList)
def get_articles(
    page: int = PageParam,
    limit: int = LimitParam,
    search: str = SearchParam,
    category: Optional[str] = Query(None, max_length=100),
    author: Optional[str] = Query(None, max_length=100),
    author_id: Optional[str] = Query(None, max_length=36),
    status_filter: Optional[ArticleStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_live_session),
):
    """List articles, newest first.

    Guests and USER-role callers only see published articles. Soft-deleted
    articles are never listed here.
    """
    query = (
        db.query(Article)
        .options(joinedload(Article.author), joinedload(Article.category))
        .filter(Article.deleted_at.is_(None))
    )

    if article_policy.restrict_to_published(identity, author_id):
        query = query.filter(Article.status == ArticleStatus.PUBLISHED)

    if status_filter:
        query = query.filter(Article.status == status_filter)

    category_pattern = like_pattern(category)
    if category_pattern:
        query = query.filter(
            Article.category.has(Category.name.ilike(category_pattern, escape="\\"))
        )

    author_pattern = like_pattern(author)
    if author_pattern:
        query = query.filter(
            Article.author.has(User.name.ilike(author_pattern, escape="\\"))
        )

    if author_id:
        query = query.filter(Article.author_id == author_id)

    pattern = like_pattern(search)
    if pattern:
        query = query.filter(
            or_(
                Article.title.ilike(pattern, escape="\\"),
                Article.content.ilike(pattern, escape="\\"),
                Article.meta_title.ilike(pattern, escape="\\"),
                Article.meta_description.ilike(pattern, escape="\\"),
                Article.category.has(Category.name.ilike(pattern, escape="\\")),
                Article.author.has(User.name.ilike(pattern, escape="\\")),
            )
        )

    if start_date and end_date:
        query = query.filter(
            Article.created_at >= start_date, Article.created_at <= end_date
        )

    query = query.order_by(desc(Article.created_at))
    articles, pagination = paginate(query, page, limit)

    # Dashboard counters
    start, end = today_bounds()
    counter = db.query(Article).filter(Article.deleted_at.is_(None))
    if author_pattern:
        counter = counter.filter(
            Article.author.has(User.name.ilike(author_pattern, escape="\\"))
        )
    updated_today_count = counter.filter(
        Article.status == ArticleStatus.PUBLISHED,
        Article.updated_at >= start,
        Article.updated_at < end,
    ).count()
    # Guests never learn about unpublished work
    if article_policy.restrict_to_published(identity):
        draft_count = 0
    else:
        draft_count = counter.filter(Article.status == ArticleStatus.DRAFT).count()

    return {
        "data": articles,
        "pagination": pagination,
        "updated_today_count": updated_today_count,
        "draft_count": draft_count,
    }


@router.get("/{slug_or_id}", response_model=ArticleDetail)
def get_article(
    slug_or_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_live_session),
):
    """Get a single article by slug or id."""
    article = (
        by_slug_or_id(
            db.query(Article).options(
                joinedload(Article.author), joinedload(Article.category)
            ),
            Article,
            slug_or_id,
        )
        .first()
    )

    if not article or not article_policy.can_view(identity, article):
        raise NotFound("Article not found")

    return {"article": article}


@router.post("/", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
def create_article(
    payload: ArticleCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_author_roles),
):
    """Create a draft article owned by the caller."""
    article_policy.ensure_can_create(identity)
    _ensure_category(db, payload.category_id)

    article = Article(
        title=payload.title,
        content=payload.content,
        slug=unique_slug(db, Article, payload.title, fallback="article"),
        category_id=payload.category_id,
        cover_image=str(payload.cover_image) if payload.cover_image else None,
        meta_title=payload.meta_title or payload.title[:60],
        meta_description=payload.meta_description or payload.content[:160],
        status=ArticleStatus.DRAFT,
        author_id=identity.user_id,
    )
    db.add(article)
    _commit(db, "An article with this slug already exists")
    db.refresh(article)

    logger.info(f"Article {article.id} created by {identity.user_id} ({article.slug})")
    return {"message": "Article created successfully", "article": article}


@router.put("/{slug_or_id}", response_model=ArticleResponse)
def update_article(
    slug_or_id: str,
    payload: ArticleUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_author_roles),
):
    """Update an article. Reporters may only edit their own."""
    article = _load_article(db, slug_or_id)

    update_data = payload.model_dump(exclude_unset=True)
    article_policy.ensure_can_update(
        identity, article, changes_status=update_data.get("status") is not None
    )

    if update_data.get("status") is not None:
        update_data["status"] = article_policy.parse_status(update_data["status"])

    for field in ("title", "content"):
        if field in update_data and update_data[field] is None:
            raise ValidationFailed(details={"fields": {field: ["May not be null"]}})

    if "category_id" in update_data:
        _ensure_category(db, update_data["category_id"])

    if update_data.get("title"):
        article.slug = unique_slug(
            db, Article, update_data["title"], exclude_id=article.id, fallback="article"
        )

    if "cover_image" in update_data:
        cover = update_data.pop("cover_image")
        article.cover_image = str(cover) if cover else None

    for key, value in update_data.items():
        if key in ("meta_title", "meta_description", "status") and value is None:
            continue
        setattr(article, key, value)

    _commit(db, "An article with this slug already exists")
    db.refresh(article)
    return {"message": "Article updated successfully", "article": article}


@router.delete("/{slug_or_id}", response_model=ArticleDeleteResponse)
def delete_article(
    request: Request,
    slug_or_id: str,
    force: bool = False,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_author_roles),
):
    """
    Soft delete an article, or remove it permanently with ``force=true``.

    Soft-deleted articles can be restored by an admin until the retention
    sweep purges them.
    """
    article = _load_article(db, slug_or_id, include_deleted=True)
    article_policy.ensure_can_delete(identity, article, force=force)

    if force:
        article_id = article.id
        db.delete(article)
        db.commit()
        log_request_event(
            request,
            event_type="article.force_delete",
            message="Article permanently deleted",
            user_id=identity.user_id,
            event_category="data",
            article_id=article_id,
        )
        return {"message": "Article permanently deleted"}

    article.deleted_at = datetime.utcnow()
    db.commit()
    db.refresh(article)
    return {"message": "Article soft deleted", "article": article}


@router.patch("/restore/{slug_or_id}", response_model=ArticleResponse)
def restore_article(
    request: Request,
    slug_or_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """Undo a soft delete."""
    article = by_slug_or_id(db.query(Article), Article, slug_or_id).first()
    article_policy.ensure_can_restore(identity, article)

    article.deleted_at = None
    db.commit()
    db.refresh(article)

    log_request_event(
        request,
        event_type="article.restore",
        message="Article restored",
        user_id=identity.user_id,
        event_category="data",
        article_id=article.id,
    )
    return {"message": "Article restored successfully", "article": article}


@router.patch("/status/{article_id}", response_model=ArticleResponse)
def update_article_status(
    article_id: str,
    payload: ArticleStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_editorial_roles),
):
    """Move an article to another status (editors and admins)."""
    new_status = article_policy.ensure_can_change_status(identity, payload.status)

    article = (
        db.query(Article)
        .filter(Article.id == article_id, Article.deleted_at.is_(None))
        .first()
    )
    if not article:
        raise NotFound("Article not found")

    article.status = new_status
    db.commit()
    db.refresh(article)
    return {"message": "Status updated successfully", "article": article}
