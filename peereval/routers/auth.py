import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from peereval.core.config.settings import get_settings
from peereval.core.security.auth import (
    create_hashed_password,
    generate_reset_token,
    generate_token,
    get_current_user,
    verify_password,
)
from peereval.db.session import get_db
from peereval.models.user import User
from peereval.schemas.user import LoginRequest, PasswordResetRequest, RegisterRequest, UpdatePasswordRequest
from peereval.services.email import create_password_reset_email, send_email
from peereval.utils.helpers import as_utc, get_utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _public_user(user: User) -> dict:
    return {"id": user.id, "email": user.email, "role": user.role.value, "name": user.name}


@router.post("/register")
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == request.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=request.email,
        name=request.name,
        hashed_password=create_hashed_password(request.password),
        role=request.role,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"Registered {new_user.role.value} {new_user.id}")
    return {
        "message": f"User registered successfully as {new_user.role.value}",
        "userId": new_user.id,
        "role": new_user.role.value,
        "name": new_user.name,
    }


@router.post("/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == request.email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")

    token = generate_token({"sub": str(user.id), "role": user.role.value})
    return {
        "message": "Login successful",
        "user": _public_user(user),
        "access_token": token,
        "token_type": "bearer",
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"user": _public_user(current_user)}


@router.post("/reset")
async def request_password_reset(request: PasswordResetRequest, db: Session = Depends(get_db)):
    settings = get_settings()
    user = db.query(User).filter(User.email == request.email).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No account found with that email")

    token = generate_reset_token()
    user.password_reset_token = token
    user.token_expiry = get_utc_now() + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()

    reset_link = f"{settings.BASE_URL.rstrip('/')}/reset-password?token={token}"
    html = create_password_reset_email(reset_link, settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)
    sent = await run_in_threadpool(send_email, user.email, "Reset your PeerEval password", html)
    if not sent:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send reset email"
        )

    return {"message": f"Password reset link sent to {user.email}"}


@router.post("/update-password")
def update_password(request: UpdatePasswordRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.password_reset_token == request.token).first()
    except SQLAlchemyError:
        logger.error("Database error when looking up reset token", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error when looking up token"
        )

    if not user:
        logger.warning("Invalid password reset token")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token")

    if not user.token_expiry or as_utc(user.token_expiry) < get_utc_now():
        logger.warning(f"Reset token expired for user {user.id}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token expired")

    try:
        hashed_password = create_hashed_password(request.new_password)
    except Exception:
        logger.error("Error hashing password", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to hash password"
        )

    try:
        user.hashed_password = hashed_password
        user.password_reset_token = None
        user.token_expiry = None
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Database error updating password for user {user.id}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update password in database"
        )

    logger.info(f"Password updated for user {user.id}")
    return {"message": "Password successfully updated"}
