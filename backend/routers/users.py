from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from crud import users as crud
from models.users import User as UserModel
from schemas.users import PasswordUpdate, RoleUpdate, User, UserPage
from utils.auth_utils import get_user_identifier, require_role

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger("users")


@router.get("/", response_model=UserPage)
def read_users(
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    user: UserModel = Depends(require_role(["admin"]))
):
    # Out-of-range paging values are clamped rather than rejected
    page = max(1, page)
    limit = min(100, max(1, limit))
    return crud.get_users(db, page=page, limit=limit)


@router.patch("/{user_id}/role", response_model=User)
def update_user_role(
    user_id: int,
    role_update: RoleUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(require_role(["admin"]))
):
    if user.id == user_id and role_update.role != "admin":
        logger.warning(f"Admin {get_user_identifier(user)} tried to demote themself to '{role_update.role}'")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot demote your own account")

    db_user = crud.update_user_role(db, user_id, role_update.role)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"User {db_user.email} role set to '{db_user.role}' by {get_user_identifier(user)}")
    return db_user


@router.patch("/{user_id}/password", response_model=User)
def reset_user_password(
    user_id: int,
    password_update: PasswordUpdate,
    db: Session = Depends(get_db),
    user: UserModel = Depends(require_role(["admin"]))
):
    db_user = crud.update_user_password(db, user_id, password_update.password)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"Admin {get_user_identifier(user)} reset password for user {db_user.email}")
    return db_user
