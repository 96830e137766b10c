from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from starlette import status
import logging
from database import get_db
from crud import users as crud_users
from models.users import User as UserModel
from schemas.users import Token, User, UserCreate
from utils.auth_utils import create_access_token, get_current_user, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("auth")

db_dependency = Annotated[Session, Depends(get_db)]


def _token_for(user: UserModel) -> Token:
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return Token(access_token=access_token, token_type="bearer", user=User.model_validate(user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: db_dependency):
    existing_user = crud_users.get_user_by_email(db, user.email)
    if existing_user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered")

    new_user = crud_users.create_user(db, user)
    logger.info(f"User {new_user.email} registered with role '{new_user.role}'")
    return _token_for(new_user)


@router.post("/login", response_model=Token)
def login(form_data: Annotated[OAuth2PasswordRequestForm, Depends()], db: db_dependency):
    """Password login; the form's ``username`` field carries the email address."""
    user = crud_users.get_user_by_email(db, form_data.username)
    if user is None or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Failed login attempt for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is inactive")
    return _token_for(user)


@router.get("/me", response_model=User)
def read_current_user(user: UserModel = Depends(get_current_user)):
    return user
