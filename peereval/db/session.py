from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from peereval.core.config.settings import get_settings

DATABASE_URL = get_settings().DATABASE_URL


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    options = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite only lives as long as its connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


# Create engine
engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Create session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
