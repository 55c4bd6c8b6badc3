# storefront/routes/auth.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.database import get_db
from storefront.errors import AuthenticationError, ValidationError
from storefront.models.users import User
from storefront.schemas import user as schemas
from storefront.schemas.common import ApiResponse, Message
from storefront.utils.audit import write_log, client_ip
from storefront.utils.hashing import get_password_hash, verify_password
from storefront.utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


# Issue a JWT for the user and mirror it into the "token" cookie
def _token_response(user: User, response: Response) -> ApiResponse[schemas.Token]:
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})
    response.set_cookie(
        "token", access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True, samesite="lax",
    )
    return ApiResponse(data=schemas.Token(
        access_token=access_token, user=schemas.UserResponse.model_validate(user)
    ))


# Register a new user
@router.post("/register", response_model=ApiResponse[schemas.Token], status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, request: Request, response: Response, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = payload.email.strip().lower()

    # Check for existing user
    existing = db.query(User).filter(func.lower(User.email) == normalized_email).first()
    if existing:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": normalized_email, "reason": "Email exists"})
        raise ValidationError("User already exists with this email")

    user = User(
        name=payload.name.strip(),
        email=normalized_email,
        password_hash=get_password_hash(payload.password),
        role="user",
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    write_log(db, user_id=user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": user.email})
    return _token_response(user, response)


# Authenticate user and issue JWT token
@router.post("/login", response_model=ApiResponse[schemas.Token])
def login(payload: schemas.UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    # Validate credentials and log failure on error
    if not user or not verify_password(payload.password, user.password_hash):
        write_log(db, user_id=(user.id if user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": email})
        raise AuthenticationError("Invalid credentials")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    write_log(db, user_id=user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": user.email})
    return _token_response(user, response)


@router.post("/logout", response_model=ApiResponse[Message])
def logout(response: Response):
    response.delete_cookie("token")
    return ApiResponse(data=Message(message="Logged out"))


# Retrieve current authenticated user details
@router.get("/me", response_model=ApiResponse[schemas.UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=schemas.UserResponse.model_validate(current_user))


@router.put("/updatepassword", response_model=ApiResponse[schemas.Token])
def update_password(
    payload: schemas.PasswordUpdate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise AuthenticationError("Current password is incorrect")

    current_user.password_hash = get_password_hash(payload.new_password)
    db.commit()
    db.refresh(current_user)

    write_log(db, user_id=current_user.id, action="PASSWORD_UPDATE", resource="auth",
              status="SUCCESS", ip=client_ip(request))
    return _token_response(current_user, response)
