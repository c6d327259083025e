from pydantic import BaseModel, Field, HttpUrl
from datetime import datetime
from typing import List, Optional
from app.models.article import ArticleStatus


class ArticleCreate(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    content: str = Field(min_length=10)
    category_id: Optional[str] = None
    cover_image: Optional[HttpUrl] = None
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    content: Optional[str] = Field(default=None, min_length=10)
    category_id: Optional[str] = None
    cover_image: Optional[HttpUrl] = None
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    # Checked by the policy, as on the status route
    status: Optional[str] = None


class ArticleStatusUpdate(BaseModel):
    # Checked against ArticleStatus by the policy so the error is InvalidStatus
    status: str


class AuthorSummary(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class ArticleSummary(BaseModel):
    id: str
    title: str
    slug: str
    cover_image: Optional[str] = None
    status: ArticleStatus
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    category: Optional[CategorySummary] = None
    author: Optional[AuthorSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Article(ArticleSummary):
    content: str
    category_id: Optional[str] = None
    author_id: str
    deleted_at: Optional[datetime] = None


class ArticleResponse(BaseModel):
    message: str
    article: Article


class ArticleDetail(BaseModel):
    article: Article


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ArticleList(BaseModel):
    data: List[ArticleSummary]
    pagination: Pagination
    updated_today_count: int
    draft_count: int


class AdminArticleList(BaseModel):
    articles: List[Article]
    pagination: Pagination
    published_today_count: int


class ArticleDeleteResponse(BaseModel):
    message: str
    article: Optional[Article] = None
