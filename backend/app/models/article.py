import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base
from app.models.user import new_id


class ArticleStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class Article(Base):
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String, unique=True, nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(ArticleStatus, name="article_status"),
        nullable=False,
        default=ArticleStatus.DRAFT,
        index=True,
    )

    # SEO and presentation
    cover_image = Column(String, nullable=True)
    meta_title = Column(String(60))
    meta_description = Column(String(160))

    # Soft delete: set while the article waits for restore or purge
    deleted_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    author = relationship("User", back_populates="articles")
    category = relationship("Category", back_populates="articles")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
