"""
Authentication Routes
Handles login, registration, and token management
"""
from fastapi import APIRouter, Depends, Request

from forex.api.deps import client_ip, get_container, get_current_user
from forex.api.responses import envelope
from forex.container import Container
from forex.models.user import CurrentUser, LoginRequest, RefreshRequest, RegisterRequest

router = APIRouter()


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    container: Container = Depends(get_container),
):
    """
    Login with username and password
    """
    tokens = await container.auth_service.login(payload.username, payload.password, client_ip(request))
    return envelope("Login Successful", tokens)


@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    container: Container = Depends(get_container),
):
    """
    Register a new user with a profile
    """
    user = await container.auth_service.register(payload)
    return envelope("User registered successfully", await container.user_service.get_user(user.id))


@router.post("/refreshtoken")
async def refresh_token(
    payload: RefreshRequest,
    request: Request,
    container: Container = Depends(get_container),
):
    tokens = await container.auth_service.refresh(payload.refresh_token, client_ip(request))
    return envelope("Token refreshed successfully", tokens)


@router.post("/logout")
async def logout(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    await container.auth_service.logout(current_user, client_ip(request))
    return envelope("Logout Successful")


@router.get("/me")
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    container: Container = Depends(get_container),
):
    """
    Get current authenticated user details
    """
    return envelope("User fetched successfully", await container.user_service.get_user(current_user.user_id))
