"""
api/routes/v1/admin.py -- Admin-only account management.

Routes (mounted under /api/admin/v1):
  PATCH /users/{user_id}  -- activate or deactivate an account

Deactivation takes effect on the user's next request: authenticate() and
refresh() both reload the account and reject inactive users, so outstanding
access tokens stop working immediately even though they are not revoked.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import UserActivePatch, UserResponse
from auth.dependencies import get_auth_core, require_admin
from auth.models import User

router = APIRouter()


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_active_status(
    request: Request,
    user_id: str,
    body: UserActivePatch,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Set is_active on an account. Admin only; admins cannot deactivate themselves."""
    if not body.is_active and user_id == current_user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deactivation", "message": "You cannot deactivate your own account."},
        )
    user = get_auth_core(request).set_active_status(user_id, body.is_active)
    return UserResponse.from_user(user)
