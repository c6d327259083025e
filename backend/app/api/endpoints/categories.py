from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import desc
import logging
from app.core.database import get_db
from app.core.auth import require_editorial_roles
from app.core.exceptions import Conflict, NotFound
from app.core.security import Identity
from app.models.category import Category
from app.schemas.category import (
    CategoryCreate,
    CategoryDetail,
    CategoryList,
    CategoryResponse,
    CategoryUpdate,
)
from app.services import category_policy
from app.services.slugs import unique_slug
from app.api.validation import by_slug_or_id

router = APIRouter()
logger = logging.getLogger(__name__)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A category with this slug already exists")


@router.get("/", response_model=CategoryList)
def get_categories(db: Session = Depends(get_db)):
    """Get all active categories."""
    categories = (
        db.query(Category)
        .filter(Category.is_active == True)
        .order_by(desc(Category.created_at))
        .all()
    )
    return {"categories": categories}


@router.get("/{slug_or_id}", response_model=CategoryDetail)
def get_category(slug_or_id: str, db: Session = Depends(get_db)):
    """Get an active category by slug or id."""
    category = by_slug_or_id(db.query(Category), Category, slug_or_id).first()
    if not category or not category.is_active:
        raise NotFound("Category not found")

    return {"category": category}


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_editorial_roles),
):
    """
    Create a category.

    The slug is derived from the name; if another category (active or not)
    already uses it, a timestamp is appended.
    """
    category_policy.ensure_can_manage(identity)

    category = Category(
        name=payload.name,
        slug=unique_slug(db, Category, payload.name, fallback="category"),
        description=payload.description,
        is_active=payload.is_active,
    )
    db.add(category)
    _commit(db)
    db.refresh(category)
    return {"message": "Category created successfully", "category": category}


@router.put("/{slug_or_id}", response_model=CategoryResponse)
def update_category(
    slug_or_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_editorial_roles),
):
    """Update an active category; renaming it re-derives the slug."""
    category_policy.ensure_can_manage(identity)

    category = (
        by_slug_or_id(db.query(Category), Category, slug_or_id)
        .filter(Category.is_active == True)
        .first()
    )
    if not category:
        raise NotFound("Category not found")

    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("name"):
        category.slug = unique_slug(
            db, Category, update_data["name"], exclude_id=category.id, fallback="category"
        )
    elif "name" in update_data:
        update_data.pop("name")

    for key, value in update_data.items():
        setattr(category, key, value)

    _commit(db)
    db.refresh(category)
    return {"message": "Category updated successfully", "category": category}


@router.delete("/{slug_or_id}")
def delete_category(
    slug_or_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_editorial_roles),
):
    """
    Soft delete a category.

    The category is marked inactive but stays in the database so existing
    articles keep their reference. It no longer appears in public reads.
    """
    category = by_slug_or_id(db.query(Category), Category, slug_or_id).first()
    if not category:
        raise NotFound("Category not found")

    category_policy.ensure_can_delete(identity, category)

    category.is_active = False
    db.commit()
    logger.info(f"Category {category.id} deactivated by {identity.user_id}")

    return {"message": "Category deleted (soft) successfully"}
