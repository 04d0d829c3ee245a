"""
Pydantic schemas for the portfolio API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


def _merge_fields(provided: dict, clearable: frozenset[str]) -> dict:
    """
    Keep the fields a client actually sent. Null or empty values only count
    for fields that may be cleared; for the rest they mean "keep as is".
    """
    return {
        key: value
        for key, value in provided.items()
        if key in clearable or value not in (None, "")
    }


class RequestBody(BaseModel):
    # Text fields take numbers as their string form; nothing else is checked
    # beyond presence.
    model_config = ConfigDict(coerce_numbers_to_str=True)


class CategoryCreate(RequestBody):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class CategoryUpdate(RequestBody):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    order_index: Optional[int] = None

    def changes(self) -> dict:
        return _merge_fields(
            self.model_dump(exclude_unset=True), frozenset({"description"})
        )


class LinkCreate(RequestBody):
    category_id: Optional[int] = None
    title: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class LinkUpdate(RequestBody):
    title: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    active: Optional[bool] = None
    order_index: Optional[int] = None

    def changes(self) -> dict:
        return _merge_fields(
            self.model_dump(exclude_unset=True),
            frozenset({"description", "image_url"}),
        )


class LinkResponse(BaseModel):
    id: int
    category_id: int
    title: str
    url: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    order_index: int
    active: bool
    created_at: Optional[datetime] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    order_index: int
    created_at: Optional[datetime] = None


class CategoryWithLinksResponse(CategoryResponse):
    links: list[LinkResponse]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
