"""
Categories API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from pydantic import BaseModel, Field

from wasteless.database import get_db
from wasteless.models.category import Category
from wasteless.services import category_service

router = APIRouter()


class CategoryResponse(BaseModel):
    id: int
    name_en: str
    name_he: str
    icon: Optional[str]
    sort_order: int
    is_active: bool

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name_en: str = Field(min_length=1, pattern=r"^[a-z0-9_-]+$")
    name_he: str = Field(min_length=1)
    icon: Optional[str] = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name_en: Optional[str] = Field(default=None, min_length=1, pattern=r"^[a-z0-9_-]+$")
    name_he: Optional[str] = None
    icon: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


@router.get("/", response_model=List[CategoryResponse])
async def list_categories(
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
):
    query = select(Category).order_by(Category.sort_order, Category.name_he)
    if active_only:
        query = query.where(Category.is_active == True)

    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.get_category(db, category_id)


@router.post("/", response_model=CategoryResponse, status_code=201)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    """Create a category and seed its default discount staircase"""
    return await category_service.create_category(db, **data.model_dump())


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await category_service.update_category(
        db, category_id, data.model_dump(exclude_none=True)
    )


@router.delete("/{category_id}")
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.delete_category(db, category_id)
