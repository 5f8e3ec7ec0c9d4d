import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from charity_hub.database.config.db import get_db
from charity_hub.database.models.auth import User
from charity_hub.schema.auth import RegisterUser, LoginRequest, Token, UserResponse
from charity_hub.utils.auth import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_password_hash,
)

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post(
    "/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED
)
def register(
    body: RegisterUser,
    db: Session = Depends(get_db),
):
    """
    Register a new student or donor account.
    """
    email = body.email.lower()
    existing_user = db.query(User).filter(func.lower(User.email) == email).first()
    if existing_user and not existing_user.is_guest:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists",
        )

    if existing_user:
        # Guest account from an earlier anonymous donation. Anyone could have
        # typed this address, so the claimed account stays unverified until
        # the owner of the mailbox confirms it.
        new_user = existing_user
        new_user.is_guest = False
        new_user.verified = False
        logger.info("Guest account %s claimed by registration", new_user.id)
    else:
        new_user = User(email=email, verified=True)
        db.add(new_user)

    new_user.password_hash = get_password_hash(body.password)
    new_user.first_name = body.first_name
    new_user.last_name = body.last_name
    new_user.role = body.role

    db.commit()
    db.refresh(new_user)

    return new_user


@auth_router.post("/login", response_model=Token)
def login(
    form_data: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Login and get access token.
    """
    user = authenticate_user(db, form_data.email, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    if not user.verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not verified",
        )

    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
    }


@auth_router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """
    Get current authenticated user information.
    """
    return current_user
