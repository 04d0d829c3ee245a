"""
HTTP routes for the portfolio API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from linkbio.db import DEFAULT_CATEGORY_ICON, CategoryRecord, DbClient
from linkbio.dependencies import get_db_client
from linkbio.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithLinksResponse,
    ErrorResponse,
    LinkCreate,
    LinkResponse,
    LinkUpdate,
    MessageResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorResponse}}
BAD_REQUEST = {400: {"model": ErrorResponse}}


def _with_links(db: DbClient, category: CategoryRecord) -> CategoryWithLinksResponse:
    links = [LinkResponse(**link.as_dict()) for link in db.list_links(category.id)]
    return CategoryWithLinksResponse(**category.as_dict(), links=links)


@router.get("/categories", response_model=list[CategoryWithLinksResponse])
def list_categories(db: DbClient = Depends(get_db_client)):
    """
    All categories by ascending order_index, each with its active links.
    """
    return [_with_links(db, category) for category in db.list_categories()]


@router.get(
    "/categories/{category_id}",
    response_model=CategoryWithLinksResponse,
    responses=NOT_FOUND,
)
def get_category(category_id: int, db: DbClient = Depends(get_db_client)):
    category = db.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return _with_links(db, category)


@router.post(
    "/categories", response_model=CategoryResponse, responses=BAD_REQUEST
)
def create_category(payload: CategoryCreate, db: DbClient = Depends(get_db_client)):
    if not payload.name:
        raise HTTPException(status_code=400, detail="Name is required")
    category = db.create_category(
        payload.name,
        payload.description or "",
        payload.icon or DEFAULT_CATEGORY_ICON,
    )
    logger.info("Created category %s (%r)", category.id, category.name)
    return CategoryResponse(**category.as_dict())


@router.put(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    responses=NOT_FOUND,
)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: DbClient = Depends(get_db_client),
):
    category = db.update_category(category_id, payload.changes())
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return CategoryResponse(**category.as_dict())


@router.delete(
    "/categories/{category_id}",
    response_model=MessageResponse,
    responses=NOT_FOUND,
)
def delete_category(category_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_category(category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    logger.info("Deleted category %s", category_id)
    return MessageResponse(message="Category deleted")


@router.get("/links/{link_id}", response_model=LinkResponse, responses=NOT_FOUND)
def get_link(link_id: int, db: DbClient = Depends(get_db_client)):
    link = db.get_link(link_id)
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")
    return LinkResponse(**link.as_dict())


@router.post(
    "/links",
    response_model=LinkResponse,
    responses={**BAD_REQUEST, **NOT_FOUND},
)
def create_link(payload: LinkCreate, db: DbClient = Depends(get_db_client)):
    if not payload.category_id or not payload.title or not payload.url:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if not db.get_category(payload.category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    link = db.create_link(
        payload.category_id,
        payload.title,
        payload.url,
        description=payload.description or "",
        image_url=payload.image_url or "",
    )
    return LinkResponse(**link.as_dict())


@router.put("/links/{link_id}", response_model=LinkResponse, responses=NOT_FOUND)
def update_link(
    link_id: int,
    payload: LinkUpdate,
    db: DbClient = Depends(get_db_client),
):
    link = db.update_link(link_id, payload.changes())
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")
    return LinkResponse(**link.as_dict())


@router.delete(
    "/links/{link_id}", response_model=MessageResponse, responses=NOT_FOUND
)
def delete_link(link_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_link(link_id):
        raise HTTPException(status_code=404, detail="Link not found")
    return MessageResponse(message="Link deleted")
