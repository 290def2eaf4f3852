"""
Account endpoints: login and account creation.

This is a thin HTTP adapter - all business logic is in UserService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from sensor_switcher.dependencies import get_user_service
from sensor_switcher.services.user_service import UserService

router = APIRouter(prefix="/user")


class LoginRequest(BaseModel):
    """Request model for login."""
    username: Optional[str] = None
    password: Optional[str] = None


class CreateAccountRequest(BaseModel):
    """Request model for account creation."""
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None


@router.post("/login")
async def login(
    request: LoginRequest,
    service: UserService = Depends(get_user_service)
):
    """
    Exchange username and password for a bearer token (valid for 1 hour).

    Returns:
        dict: {"token": "eyJhbGciOi..."}

    Raises:
        400 if a field is missing, 401 on bad credentials
    """
    return await service.login(request.username, request.password)


@router.post("/create-account", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    service: UserService = Depends(get_user_service)
):
    """
    Register a new user.

    Returns:
        dict: {"message": "Account created successfully", "userId": 1}

    Raises:
        400 if a field is missing, 409 if username or email is taken
    """
    return await service.create_account(request.username, request.password, request.email)
