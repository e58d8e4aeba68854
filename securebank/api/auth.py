"""
Signup, login and logout endpoints
"""

from fastapi import APIRouter, Depends, status

from .deps import BankingSystem, get_banking_system, get_cookie_transport
from .schemas import LoginRequest, SignupRequest
from ..cookies import CookieTransport


router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    transport: CookieTransport = Depends(get_cookie_transport),
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a user and start a session"""
    result = system.auth_service.signup(request.model_dump(), transport)
    return {"user": result.user, "token": result.token}


@router.post("/login")
async def login(
    request: LoginRequest,
    transport: CookieTransport = Depends(get_cookie_transport),
    system: BankingSystem = Depends(get_banking_system)
):
    """Authenticate and replace existing sessions"""
    result = system.auth_service.login(request.email, request.password, transport)
    return {"user": result.user, "token": result.token}


@router.post("/logout")
async def logout(
    transport: CookieTransport = Depends(get_cookie_transport),
    system: BankingSystem = Depends(get_banking_system)
):
    """Revoke the current session and clear the cookie"""
    return system.auth_service.logout(transport).to_dict()
