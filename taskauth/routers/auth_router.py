from fastapi import APIRouter, Depends, status

from taskauth.auth import AuthService
from taskauth.dependencies import AuthenticatedUser, get_auth_service, get_current_user
from taskauth.device import DeviceInfo, device_from_request
from taskauth.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    device: DeviceInfo = Depends(device_from_request),
    auth: AuthService = Depends(get_auth_service)
):
    """
    Create new user account.

    Process:
    1. Validate input (done by Pydantic)
    2. Check username/email availability
    3. Hash password and insert user
    4. Issue token and record session
    5. Return token and user data

    Error cases:
    - 400: Validation failed
    - 409: Username or email already exists
    """
    result = auth.register(request, device)
    return AuthResponse(token=result.token, user=UserResponse.model_validate(result.user))


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    device: DeviceInfo = Depends(device_from_request),
    auth: AuthService = Depends(get_auth_service)
):
    """
    Authenticate user and issue a token.

    Generic error message prevents email enumeration:
    no indication whether email or password was wrong.
    """
    result = auth.login(request, device)
    return AuthResponse(token=result.token, user=UserResponse.model_validate(result.user))


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service)
):
    user = auth.get_profile(current.user_id)
    return ProfileResponse(user=UserResponse.model_validate(user))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    request: UpdateProfileRequest,
    current: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service)
):
    """
    Update username and/or email. At least one must be given.
    """
    user = auth.update_profile(current.user_id, request)
    return ProfileResponse(user=UserResponse.model_validate(user))


@router.put("/password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service)
):
    """
    Change password after re-checking the current one.

    Other sessions are left alone.
    """
    return MessageResponse(message=auth.change_password(current.user_id, request))
