from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from ..deps import changes_from, get_stores, require_admin
from ..models import Category, Product, slugify
from ..repository import Stores

router = APIRouter(tags=["catalog"])
logger = logging.getLogger(__name__)


class ProductPayload(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    originalPrice: Optional[float] = None
    images: Optional[List[str]] = None
    category: Optional[str] = None
    stock: Optional[int] = None
    isFeatured: Optional[bool] = None
    isActive: Optional[bool] = None
    colors: Optional[List[str]] = None


class CategoryPayload(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    isActive: Optional[bool] = None


def _category_key(stores: Stores, value: str) -> str:
    # accept a category id, slug or display name
    cat = stores.categories.get(value)
    if cat is None:
        slug = slugify(value)
        cat = stores.categories.find(lambda c: c.slug == slug or slugify(c.name) == slug)
    return cat.slug if cat else slugify(value)


# ============================================================
# Products
# ============================================================
@router.get("/api/products")
def list_products(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    stores: Stores = Depends(get_stores),
):
    products = [p for p in stores.products.list() if p.isActive]
    if search:
        products = [p for p in products if p.matches_search(search)]
    elif category and category != "all":
        key = _category_key(stores, category)
        products = [p for p in products if p.category == key]
    if featured:
        products = [p for p in products if p.isFeatured]
    return {"success": True, "data": products, "count": len(products)}


@router.post("/api/products", status_code=201)
def create_product(payload: ProductPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.name or payload.price is None or not payload.category:
        raise HTTPException(status_code=400, detail="Missing required fields: name, price, category")
    data = changes_from(payload)
    data["category"] = _category_key(stores, payload.category)
    try:
        product = Product.parse_obj(data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    stores.products.create(product)
    logger.info(f"Product created: {product.name} ({product.id})")
    return {"success": True, "data": product}


def _update_product(stores: Stores, product_id: str, changes: dict) -> Product:
    if changes.get("category"):
        changes["category"] = _category_key(stores, changes["category"])
    try:
        product = stores.products.update(product_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.put("/api/products")
def update_product(payload: ProductPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Product ID required")
    return {"success": True, "data": _update_product(stores, payload.id, changes_from(payload))}


@router.delete("/api/products")
def delete_product(id: Optional[str] = Query(None), stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Product ID required")
    if not stores.products.delete(id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "message": "Product deleted successfully"}


@router.get("/api/products/{product_id}")
def get_product(product_id: str, stores: Stores = Depends(get_stores)):
    product = stores.products.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "data": product}


@router.put("/api/products/{product_id}")
def update_product_by_id(product_id: str, payload: ProductPayload,
                         stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    return {"success": True, "data": _update_product(stores, product_id, changes_from(payload))}


@router.delete("/api/products/{product_id}")
def delete_product_by_id(product_id: str, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not stores.products.delete(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "message": "Product deleted successfully"}


# ============================================================
# Categories
# ============================================================
@router.get("/api/categories")
def list_categories(stores: Stores = Depends(get_stores)):
    products = stores.products.list()
    out = []
    for c in stores.categories.list():
        row = jsonable_encoder(c)
        row["productCount"] = sum(1 for p in products if p.category == c.slug and p.isActive)
        row["href"] = f"/products?category={c.slug}"
        out.append(row)
    return {"success": True, "data": out, "count": len(out)}


@router.post("/api/categories", status_code=201)
def create_category(payload: CategoryPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not (payload.name or "").strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    try:
        category = Category.parse_obj(changes_from(payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if stores.categories.find(lambda c: c.slug == category.slug or c.name.lower() == category.name.lower()):
        raise HTTPException(status_code=400, detail="Category already exists")
    stores.categories.create(category)
    logger.info(f"Category created: {category.name} ({category.id})")
    return {"success": True, "data": category}


@router.put("/api/categories")
def update_category(payload: CategoryPayload, stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Category ID required")
    current = stores.categories.get(payload.id)
    if current is None:
        raise HTTPException(status_code=404, detail="Category not found")
    # the slug is what products reference; it only changes when sent explicitly
    changes = changes_from(payload)
    if "slug" in changes:
        changes["slug"] = slugify(changes["slug"] or "") or current.slug
    name = (changes.get("name") or current.name).strip()
    slug = changes.get("slug", current.slug)
    clash = stores.categories.find(
        lambda c: c.id != current.id and (c.slug == slug or c.name.lower() == name.lower())
    )
    if clash:
        raise HTTPException(status_code=400, detail="Category already exists")
    try:
        category = stores.categories.update(payload.id, changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    if category.slug != current.slug:
        moved = [p for p in stores.products.list() if p.category == current.slug]
        for p in moved:
            stores.products.update(p.id, {"category": category.slug})
        logger.info(f"Category {current.slug} -> {category.slug}: moved {len(moved)} products")
    return {"success": True, "data": category}


@router.delete("/api/categories")
def delete_category(id: Optional[str] = Query(None), stores: Stores = Depends(get_stores), _=Depends(require_admin)):
    if not id:
        raise HTTPException(status_code=400, detail="Category ID required")
    if not stores.categories.delete(id):
        raise HTTPException(status_code=404, detail="Category not found")
    logger.info(f"Category deleted: {id}")
    return {"success": True, "message": "Category deleted successfully"}
