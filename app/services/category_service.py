"""
分类/地区树
"""
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category, Location


def build_tree(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    把带parentId的扁平节点组装成树，父节点缺失的节点作为根节点
    """
    node_map = {node["id"]: {**node, "children": []} for node in nodes}
    roots = []
    for node in nodes:
        current = node_map[node["id"]]
        parent_id = node.get("parentId")
        if parent_id is not None and parent_id in node_map:
            node_map[parent_id]["children"].append(current)
        else:
            roots.append(current)
    return roots


async def get_category_tree(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(Category).order_by(Category.name))
    return build_tree([
        {"id": c.id, "name": c.name, "slug": c.slug, "parentId": c.parent_id}
        for c in result.scalars().all()
    ])


async def get_location_tree(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(Location).order_by(Location.name))
    return build_tree([
        {"id": loc.id, "name": loc.name, "parentId": loc.parent_id, "lat": loc.lat, "lng": loc.lng}
        for loc in result.scalars().all()
    ])
