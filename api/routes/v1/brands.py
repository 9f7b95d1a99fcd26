"""
api/routes/v1/brands.py -- Brands owned by the caller's tenant.

Routes:
  POST   /api/v1/admin/brands               -- create (admin)
  GET    /api/v1/admin/brands               -- list (any role)
  GET    /api/v1/admin/brands/{id}          -- detail (any role)
  PUT    /api/v1/admin/brands/{id}          -- partial update (admin)
  DELETE /api/v1/admin/brands/{id}          -- permanent delete (admin)
  PATCH  /api/v1/admin/brands/{id}/enable   -- enable (admin)
  PATCH  /api/v1/admin/brands/{id}/disable  -- disable (admin)

Role checks happen in BrandService, so every route only needs a Principal.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from api.models import BrandCreate, BrandResponse, BrandUpdate
from auth.dependencies import get_current_principal
from auth.models import Principal
from catalog.service import BrandService

router = APIRouter()


def _service(request: Request) -> BrandService:
    return request.app.state.brands


@router.post("/admin/brands", response_model=BrandResponse, status_code=201)
def create_brand(
    request: Request,
    body: BrandCreate,
    principal: Principal = Depends(get_current_principal),
) -> BrandResponse:
    return BrandResponse.from_brand(_service(request).create_brand(principal, **body.model_dump()))


@router.get("/admin/brands", response_model=list[BrandResponse])
def list_brands(
    request: Request,
    include_disabled: bool = True,
    principal: Principal = Depends(get_current_principal),
) -> list[BrandResponse]:
    brands = _service(request).list_brands(principal, include_disabled=include_disabled)
    return [BrandResponse.from_brand(b) for b in brands]


@router.get("/admin/brands/{brand_id}", response_model=BrandResponse)
def get_brand(
    request: Request,
    brand_id: UUID,
    principal: Principal = Depends(get_current_principal),
) -> BrandResponse:
    return BrandResponse.from_brand(_service(request).get_brand(principal, brand_id))


@router.put("/admin/brands/{brand_id}", response_model=BrandResponse)
def update_brand(
    request: Request,
    brand_id: UUID,
    body: BrandUpdate,
    principal: Principal = Depends(get_current_principal),
) -> BrandResponse:
    return BrandResponse.from_brand(_service(request).update_brand(principal, brand_id, **body.model_dump()))


@router.delete("/admin/brands/{brand_id}", status_code=204)
def delete_brand(
    request: Request,
    brand_id: UUID,
    principal: Principal = Depends(get_current_principal),
) -> Response:
    _service(request).delete_brand(principal, brand_id)
    return Response(status_code=204)


@router.patch("/admin/brands/{brand_id}/enable", response_model=BrandResponse)
def enable_brand(
    request: Request,
    brand_id: UUID,
    principal: Principal = Depends(get_current_principal),
) -> BrandResponse:
    return BrandResponse.from_brand(_service(request).enable_brand(principal, brand_id))


@router.patch("/admin/brands/{brand_id}/disable", response_model=BrandResponse)
def disable_brand(
    request: Request,
    brand_id: UUID,
    principal: Principal = Depends(get_current_principal),
) -> BrandResponse:
    return BrandResponse.from_brand(_service(request).disable_brand(principal, brand_id))
