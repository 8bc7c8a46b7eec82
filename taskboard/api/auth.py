# Authentication API routes for user registration, login, logout and profile

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import get_app_db
from taskboard.db_handlers import UserDBHandler
from taskboard.dependencies.auth import get_bearer_token, get_current_user
from taskboard.models import User
from taskboard.schemas import (
    AuthResponse,
    MessageResponse,
    UserInfo,
    UserLogin,
    UserRegister,
)
from taskboard.utils.auth import (
    blacklist_token,
    create_access_token,
    get_password_hash,
    verify_password,
)
from taskboard.utils.logger import setup_logger
from taskboard.utils.security_logger import security_logger

logger = setup_logger("api.auth")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        token=create_access_token(user.id),
    )


def _duplicate_registration(request: Request, email: str) -> HTTPException:
    security_logger.log_suspicious_activity(
        "DUPLICATE_REGISTRATION",
        f"Attempt to register existing email {email}",
        security_logger.get_client_ip(request),
        user_agent=security_logger.get_user_agent(request),
    )
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists"
    )


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register_user(
    user_data: UserRegister,
    request: Request,
    db: AsyncSession = Depends(get_app_db),
):
    """Register a new user and return a token for immediate use."""
    user_db_handler = UserDBHandler()
    email = user_data.email.lower()

    if await user_db_handler.count_by_email(email, db=db):
        raise _duplicate_registration(request, email)

    # Password is hashed using bcrypt before storage
    try:
        user = await user_db_handler.create(
            {
                "name": user_data.name,
                "email": email,
                "hashed_password": get_password_hash(user_data.password),
            },
            db=db,
        )
    except IntegrityError as e:
        # Lost a race against a concurrent registration of the same email
        raise _duplicate_registration(request, email) from e

    logger.info(f"Registered user {user.id}")
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
async def login_user(
    user_data: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_app_db),
):
    """Authenticate user and return JWT token for API access."""
    email = user_data.email.lower()
    ip = security_logger.get_client_ip(request)
    user_agent = security_logger.get_user_agent(request)

    user = await UserDBHandler().get_user_by_email(email, db=db)
    if user is None:
        security_logger.log_auth_attempt(
            email, False, ip, user_agent, details="User not found"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    if not verify_password(user_data.password, user.hashed_password):
        security_logger.log_auth_attempt(
            email, False, ip, user_agent, details="Invalid password"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    security_logger.log_auth_attempt(email, True, ip, user_agent)
    return _auth_response(user)


@router.get("/me", response_model=UserInfo)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Retrieve current authenticated user's profile information."""
    return UserInfo.model_validate(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout_user(
    current_user: User = Depends(get_current_user),
    token: str = Depends(get_bearer_token),
):
    """Revoke the presented token until it would have expired anyway."""
    blacklist_token(token)
    logger.info(f"User {current_user.id} logged out")
    return MessageResponse(message="Logged out successfully")
