# db/init.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from dotenv import load_dotenv
import os
import logging

load_dotenv()

logger = logging.getLogger(__name__)

# ---- Database engine & Session ----
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set in environment (.env)")

engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ---- Base for ORM models ----
Base = declarative_base()


# ---- DB session dependency ----
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def import_models():
    # Import models so their metadata is registered on Base
    from models import (  # noqa: F401
        role,
        user,
        membership,
        subscription,
        attendance,
        gym_class,
    )


# ---- Initialization & optional seeding ----
def init_db(seed: bool = True, bind=None):
    """
    Imports all model modules to register tables, creates them,
    and (optionally) seeds roles, one user per role and the default
    membership catalog if they do not exist yet.
    """
    import_models()

    # Create tables
    Base.metadata.create_all(bind=bind or engine)

    if seed:
        from services.seed import run_seed

        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=bind) if bind else SessionLocal
        db = session_factory()
        try:
            summary = run_seed(db)
            logger.info(f"Seed finished: {summary}")
        finally:
            db.close()
