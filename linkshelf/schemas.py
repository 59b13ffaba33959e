from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# --- User ---

class UserCreate(BaseModel):
    email: str = Field(max_length=255)
    name: str | None = Field(None, max_length=100)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    parent_id: int | None = None


class CategoryUpdate(BaseModel):
    original_name: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=100)
    # Parent of the category being renamed; None addresses a top-level one.
    parent_id: int | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    parent_id: int | None
    model_config = ConfigDict(from_attributes=True)


class FrequentCategoryResponse(CategoryResponse):
    content_count: int


class AutoCategorizeResponse(BaseModel):
    category: str | None


# --- Content ---

class ContentCreate(BaseModel):
    link: str = Field(min_length=1, max_length=2048)
    title: str | None = Field(None, max_length=500)
    comment: str | None = None
    deadline: date | None = None
    favorite: bool = False
    category_name: str | None = Field(None, min_length=1, max_length=100)
    parent_id: int | None = Field(None, description="Parent of category_name; only valid together with it.")


class ContentBatchCreate(BaseModel):
    links: list[str] = Field(min_length=1)


class ContentUpdate(BaseModel):
    id: int
    link: str | None = Field(None, min_length=1, max_length=2048)
    title: str | None = Field(None, max_length=500)
    description: str | None = None
    comment: str | None = None
    deadline: date | None = None
    favorite: bool | None = None
    category_name: str | None = Field(None, min_length=1, max_length=100)
    parent_id: int | None = Field(None, description="Parent of category_name; only valid together with it.")


class ContentResponse(BaseModel):
    id: int
    link: str
    title: str
    description: str | None
    cover_image: str | None
    comment: str | None
    deadline: date | None
    favorite: bool
    category: CategoryResponse | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ReminderCountResponse(BaseModel):
    count: int


class SummaryResponse(BaseModel):
    content_id: int
    summary: str | None


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # Will be typed in router
    total: int
    page: int
    page_size: int
    pages: int


# --- Errors ---

class ErrorResponse(BaseModel):
    detail: str
    error: str
