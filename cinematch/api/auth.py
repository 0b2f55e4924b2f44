"""
Authentication API endpoints.
"""

import logging
import re
import uuid
from fastapi import APIRouter, HTTPException, status, Depends
from typing import Optional
from sqlalchemy.exc import IntegrityError

from ..models import AuthRequest, AuthResponse
from ..storage import SQLStorage, get_storage
from ..utils.auth import authenticate_user, create_token_for_user, get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize(request: Optional[AuthRequest]) -> tuple[str, str]:
    if request is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid request body")
    return (request.email or "").strip(), (request.password or "").strip()


@router.post("/register", response_model=AuthResponse)
async def register(
    request: Optional[AuthRequest] = None,
    storage: SQLStorage = Depends(get_storage)
):
    """
    Register a new user and return an access token.

    Raises:
        HTTPException: 400 for an invalid email, empty password or a taken email
    """
    email, password = _normalize(request)

    if not email or not _EMAIL_RE.match(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")

    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid password")

    if await storage.get_user_by_email(email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    try:
        user = await storage.create_user(
            user_id=str(uuid.uuid4()),
            email=email,
            hashed_password=get_password_hash(password),
        )
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        logger.warning(f"Duplicate registration rejected for {email}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
    logger.info(f"Registered user {user.id}")

    return AuthResponse(token=create_token_for_user(user), user_id=user.id)


@router.post("/login", response_model=AuthResponse)
async def login(request: Optional[AuthRequest] = None):
    """
    Log in with email and password.

    Raises:
        HTTPException: 400 for missing fields, 401 for bad credentials
    """
    email, password = _normalize(request)

    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")

    user = await authenticate_user(email, password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthResponse(token=create_token_for_user(user), user_id=user.id)
