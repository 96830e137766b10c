"""
Database Configuration Module

This module handles the database configuration and connection setup for the Supplier Ledger.
It uses SQLAlchemy for ORM (Object-Relational Mapping) with PostgreSQL as the database.

The module includes:
- Database connection setup
- Session management
- Base model class definition
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from config import DATABASE_URL

# SQLite is accepted for local runs and tests. An in-memory database has to
# share a single connection across threads, otherwise every session sees an
# empty schema.
if DATABASE_URL.startswith("sqlite"):
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
else:
    # The engine is the entry point to the SQLAlchemy ORM
    engine = create_engine(DATABASE_URL, pool_size=20, pool_pre_ping=True)

# Create SessionLocal class
# SessionLocal is a factory for creating new Session objects
# autocommit=False means we need to explicitly commit transactions
# autoflush=False means we need to explicitly flush changes to the database
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base is the declarative base class that our ORM models will inherit from
Base = declarative_base()


# Dependency to get database session
def get_db():
    """
    Dependency function that provides a database session.

    This function creates a new database session for each request and ensures
    that the session is properly closed after the request is completed.

    Yields:
        Session: A SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
