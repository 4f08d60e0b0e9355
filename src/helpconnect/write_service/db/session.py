"""
session.py
-----------
Creates the database engine and session factory for SQLAlchemy.
This connects to PostgreSQL using the connection string from helpconnect.config.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from helpconnect import config

# Create a SQLAlchemy engine; it manages the connection pool
engine = create_engine(config.DATABASE_URL, pool_pre_ping=True, future=True)

# Create a session factory for new DB sessions
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

# Base class for ORM models to inherit from (like HelpRequestRow)
Base = declarative_base()


def create_tables(bind=None):
    """Create all tables if not present."""
    Base.metadata.create_all(bind or engine)
