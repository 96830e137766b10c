#!/usr/bin/env python3
"""
Promote an existing user to the admin role.

Usage:
    python scripts/set_admin.py someone@example.com
"""

import sys
import os
import argparse
import logging
from dotenv import load_dotenv

load_dotenv()

# Add the parent directory to sys.path to allow imports from backend
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SessionLocal
from crud.users import get_user_by_email, update_user_role

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def set_admin(email: str) -> bool:
    db = SessionLocal()
    try:
        user = get_user_by_email(db, email)
        if user is None:
            logger.error(f"No user registered with email {email}")
            return False
        if user.role == "admin":
            logger.info(f"{user.email} is already an admin")
            return True
        update_user_role(db, user.id, "admin")
        logger.info(f"{user.email} is now an admin")
        return True
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant the admin role to a registered user.")
    parser.add_argument("email", help="email address of the user to promote")
    args = parser.parse_args()
    sys.exit(0 if set_admin(args.email) else 1)
