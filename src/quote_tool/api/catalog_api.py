"""
Catalog API - FastAPI router for products and the company profile.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder

from ..services.catalog_service import CatalogService
from .schemas import CompanyProfileIn, ProductIn
from .state import get_catalog_service

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/products")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    """List catalog products."""
    return jsonable_encoder(service.list_products(category=category, search=search))


@router.get("/products/stats")
async def get_stats(service: CatalogService = Depends(get_catalog_service)):
    return service.get_stats()


@router.get("/products/{product_id}")
async def get_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    product = service.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")
    return jsonable_encoder(product)


@router.post("/products", status_code=201)
async def create_product(data: ProductIn, service: CatalogService = Depends(get_catalog_service)):
    """Create a new product."""
    try:
        return jsonable_encoder(service.create_product(data.to_product()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/products/{product_id}")
async def update_product(product_id: str, data: ProductIn, service: CatalogService = Depends(get_catalog_service)):
    """Replace an existing product."""
    if not service.get_product(product_id):
        raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")
    try:
        return jsonable_encoder(service.update_product(product_id, data.to_product()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    try:
        service.delete_product(product_id)
        return {"success": True, "message": f"Product '{product_id}' deleted"}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/company")
async def get_company_profile(service: CatalogService = Depends(get_catalog_service)):
    return jsonable_encoder(service.get_company_profile())


@router.put("/company")
async def save_company_profile(data: CompanyProfileIn, service: CatalogService = Depends(get_catalog_service)):
    return jsonable_encoder(service.save_company_profile(data.to_profile()))
