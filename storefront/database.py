import os
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

logger = logging.getLogger(__name__)

# ======================================================
# DATABASE CONNECTION
# ======================================================

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

# Hosted Postgres providers still hand out the legacy scheme.
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

if DATABASE_URL.startswith("sqlite"):
    # Local runs and the test suite
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,       # drops stale connections after idle periods
        pool_size=5,
        max_overflow=2,
        pool_timeout=30,
        pool_recycle=300,
        connect_args={
            "sslmode": os.getenv("DATABASE_SSLMODE", "require"),
            "connect_timeout": 10,
        },
    )

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)

Base = declarative_base()


# ======================================================
# DEPENDENCY
# ======================================================

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ======================================================
# LIFECYCLE
# ======================================================

def init_database():
    """
    Idempotent schema bootstrap, run once per process on startup.
    Creates every table declared in storefront.models that is missing.
    """
    import storefront.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

    logger.info("Database verified (tables: %s)", ", ".join(sorted(Base.metadata.tables)))


def close_database():
    engine.dispose()
    logger.info("Database connections released")
