from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from restaurant_loyalty.config import DATABASE_URL

connect_args = {}
if DATABASE_URL.startswith("postgres"):
    connect_args = {"options": "-c timezone=utc"}
elif DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def not_deleted(query, model):
    """Restrict a query to rows that have not been soft-deleted."""
    return query.filter(model.is_deleted.is_(False))
