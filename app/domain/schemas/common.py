from pydantic import BaseModel, ConfigDict
from typing import Generic, List, TypeVar

from app.domain.models import Page

T = TypeVar("T")


class StrictModel(BaseModel):
    """Request bodies: unknown fields are rejected"""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PageSchema(BaseModel, Generic[T]):
    items: List[T]
    pagination: PaginationSchema


def page_response(page: Page, schema) -> dict:
    return {
        "items": [schema.model_validate(item) for item in page.items],
        "pagination": PaginationSchema(
            page=page.page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_prev=page.has_prev,
        ),
    }


class MessageSchema(BaseModel):
    message: str
