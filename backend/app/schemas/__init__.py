from app.schemas.article import (
    Article,
    ArticleCreate,
    ArticleUpdate,
    ArticleStatusUpdate,
    ArticleSummary,
    ArticleList,
    Pagination,
)
from app.schemas.category import Category, CategoryCreate, CategoryUpdate
from app.schemas.user import User, UserCreate, UserRegister, UserLogin, UserRoleUpdate

__all__ = [
    "Article",
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleStatusUpdate",
    "ArticleSummary",
    "ArticleList",
    "Pagination",
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "User",
    "UserCreate",
    "UserRegister",
    "UserLogin",
    "UserRoleUpdate",
]
