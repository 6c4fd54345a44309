"""
分类与地区API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.common import ResponseModel
from app.services import category_service

router = APIRouter(prefix="/api", tags=["分类"])


@router.get("/categories", response_model=ResponseModel)
async def get_categories(db: AsyncSession = Depends(get_db)):
    """
    获取分类树
    """
    tree = await category_service.get_category_tree(db)
    return ResponseModel(code=200, message="获取成功", data=tree)


@router.get("/locations", response_model=ResponseModel)
async def get_locations(db: AsyncSession = Depends(get_db)):
    tree = await category_service.get_location_tree(db)
    return ResponseModel(code=200, message="获取成功", data=tree)
