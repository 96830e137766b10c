import logging
import math
from typing import Dict, Optional

from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import PersistenceError, ValidationError
from models.users import User
from schemas.users import UserCreate
from utils.auth_utils import hash_password

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def count_users(db: Session) -> int:
    return db.query(func.count(User.id)).scalar()


def get_users(db: Session, page: int = 1, limit: int = 20) -> Dict:
    total = count_users(db)
    users = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "users": users,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def create_user(db: Session, user: UserCreate) -> User:
    """
    Register a user. The very first user becomes ``admin``; everyone after
    that starts as ``viewer``.

    The count and the insert happen in one database transaction. On
    PostgreSQL the users table is locked for that transaction so two
    simultaneous first registrations cannot both be promoted.
    """
    hashed_password = hash_password(user.password)
    try:
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("LOCK TABLE users IN SHARE ROW EXCLUSIVE MODE"))
        is_first_user = count_users(db) == 0
        db_user = User(
            email=user.email.strip().lower(),
            hashed_password=hashed_password,
            first_name=user.first_name,
            last_name=user.last_name,
            role="admin" if is_first_user else "viewer",
        )
        db.add(db_user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValidationError("Email is already registered") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to register user")
        raise PersistenceError("Failed to register user") from e

    db.refresh(db_user)
    if is_first_user:
        logger.info(f"First registered user {db_user.email} promoted to admin")
    return db_user


def update_user_role(db: Session, user_id: int, role: str) -> Optional[User]:
    db_user = get_user(db, user_id)
    if db_user is None:
        return None
    db_user.role = role
    db.commit()
    db.refresh(db_user)
    return db_user


def update_user_password(db: Session, user_id: int, password: str) -> Optional[User]:
    db_user = get_user(db, user_id)
    if db_user is None:
        return None
    db_user.hashed_password = hash_password(password)
    db.commit()
    db.refresh(db_user)
    return db_user


def sanitize_user(user: Optional[User]) -> Optional[Dict]:
    """Column values of a user without the password hash."""
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }
