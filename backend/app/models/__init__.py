from .user import User, Role
from .category import Category
from .article import Article, ArticleStatus

__all__ = [
    "User",
    "Role",
    "Category",
    "Article",
    "ArticleStatus",
]
