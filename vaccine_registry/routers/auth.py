from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from fastapi.security import OAuth2PasswordRequestForm

from vaccine_registry.database import get_db
from vaccine_registry.models.users import User
from vaccine_registry.schemas.user import TokenResponse, UserResponse
from vaccine_registry.core.auth import get_current_user
from vaccine_registry.core.hashing import verify_password
from vaccine_registry.core.jwt import create_access_token
from vaccine_registry.core.rate_limiter import limiter

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ---------------- LOGIN (TOKEN-BASED) ----------------
@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.username == form_data.username).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(
        data={"sub": str(user.id), "role": user.role}
    )

    return {
        "access_token": token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
    }


# ---------------- CURRENT USER ----------------
@router.get("/me", response_model=UserResponse)
def me(current_user=Depends(get_current_user)):
    return current_user


# ---------------- LOGOUT ----------------
@router.post("/logout")
def logout():
    return {"message": "Logged out successfully"}
