"""
api/routes/v1/users.py -- Account administration within the caller's tenant.

Routes (all admin only):
  POST   /api/v1/admin/users               -- create account
  GET    /api/v1/admin/users               -- list accounts (?include_disabled=false to hide disabled)
  GET    /api/v1/admin/users/{id}          -- account detail
  PUT    /api/v1/admin/users/{id}          -- partial update (omitted fields unchanged)
  DELETE /api/v1/admin/users/{id}          -- permanent delete
  PATCH  /api/v1/admin/users/{id}/enable   -- enable (seat limit applies)
  PATCH  /api/v1/admin/users/{id}/disable  -- disable

An id that does not exist and an id owned by another tenant both return the
same 404. Admins cannot disable or delete their own account.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from api.models import UserCreate, UserResponse, UserUpdate
from auth.accounts import AccountService
from auth.dependencies import require_admin
from auth.models import Principal

router = APIRouter()


def _service(request: Request) -> AccountService:
    return request.app.state.accounts


@router.post("/admin/users", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserCreate, principal: Principal = Depends(require_admin)) -> UserResponse:
    account = _service(request).create_account(principal, **body.model_dump())
    return UserResponse.from_account(account)


@router.get("/admin/users", response_model=list[UserResponse])
def list_users(
    request: Request,
    include_disabled: bool = True,
    principal: Principal = Depends(require_admin),
) -> list[UserResponse]:
    accounts = _service(request).list_accounts(principal, include_disabled=include_disabled)
    return [UserResponse.from_account(a) for a in accounts]


@router.get("/admin/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: UUID, principal: Principal = Depends(require_admin)) -> UserResponse:
    return UserResponse.from_account(_service(request).get_account(principal, user_id))


@router.put("/admin/users/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: UUID,
    body: UserUpdate,
    principal: Principal = Depends(require_admin),
) -> UserResponse:
    account = _service(request).update_account(principal, user_id, **body.model_dump())
    return UserResponse.from_account(account)


@router.delete("/admin/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: UUID, principal: Principal = Depends(require_admin)) -> Response:
    _service(request).delete_account(principal, user_id)
    return Response(status_code=204)


@router.patch("/admin/users/{user_id}/enable", response_model=UserResponse)
def enable_user(request: Request, user_id: UUID, principal: Principal = Depends(require_admin)) -> UserResponse:
    return UserResponse.from_account(_service(request).enable_account(principal, user_id))


@router.patch("/admin/users/{user_id}/disable", response_model=UserResponse)
def disable_user(request: Request, user_id: UUID, principal: Principal = Depends(require_admin)) -> UserResponse:
    return UserResponse.from_account(_service(request).disable_account(principal, user_id))
