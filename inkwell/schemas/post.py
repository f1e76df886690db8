
from datetime import datetime
from typing import Annotated
from pydantic import Field, StringConstraints, field_validator
from inkwell.schemas.common import (
    CamelModel,
    Id,
    PartialUpdate,
    SLUG_REGEX,
    clean_image_url,
    reject_null,
    unique_ids,
)
from inkwell.schemas.category import CategoryOut, CategorySlug
from inkwell.schemas.user import UserOut

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
PostSlug = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100, pattern=SLUG_REGEX)]
Content = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]
Excerpt = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]

class PostCreate(CamelModel):
    title: Title
    slug: PostSlug | None = None
    content: Content
    excerpt: Excerpt
    cover_image: str | None = None
    published: bool = False
    author_id: Id | None = None
    category_ids: list[Id] = Field(min_length=1)

    @field_validator("cover_image", mode="before")
    @classmethod
    def _cover_image(cls, value):
        return clean_image_url(value, "Cover image")

    @field_validator("category_ids")
    @classmethod
    def _dedupe(cls, value):
        return unique_ids(value)

class PostUpdate(PartialUpdate):
    id: Id
    title: Title | None = None
    slug: PostSlug | None = None
    content: Content | None = None
    excerpt: Excerpt | None = None
    cover_image: str | None = None
    published: bool | None = None
    author_id: Id | None = None
    category_ids: Annotated[list[Id], Field(min_length=1)] | None = None

    @field_validator("title", "slug", "content", "excerpt", "published", "author_id", "category_ids", mode="before")
    @classmethod
    def _not_null(cls, value, info):
        return reject_null(value, info.field_name.replace("_", " ").capitalize())

    @field_validator("cover_image", mode="before")
    @classmethod
    def _cover_image(cls, value):
        return clean_image_url(value, "Cover image")

    @field_validator("category_ids")
    @classmethod
    def _dedupe(cls, value):
        return unique_ids(value)

class AssignCategoriesIn(CamelModel):
    post_id: Id
    category_ids: list[Id] = Field(min_length=1)

    @field_validator("category_ids")
    @classmethod
    def _dedupe(cls, value):
        return unique_ids(value)

class AuthorPostsIn(CamelModel):
    author_id: Id

class CategoryFilterIn(CamelModel):
    category_slug: CategorySlug

class PostSearchIn(CamelModel):
    search: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)] | None = None
    category_slug: CategorySlug | None = None
    published: bool | None = None
    page: int = Field(1, ge=1)
    page_size: int = Field(9, ge=1, le=50)

class PostOut(CamelModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    cover_image: str | None = None
    published: bool
    author_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author: UserOut | None = None
    categories: list[CategoryOut] = []

class PostPage(CamelModel):
    items: list[PostOut]
    total: int
    page: int
    page_size: int
    total_pages: int
