from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
from lumi.core.config import settings
import logging

logger = logging.getLogger(__name__)

# Ensure the URL uses postgresql:// (not postgres://) for SQLAlchemy
db_url = settings.database_url
if db_url.startswith("postgres://"):
    db_url = db_url.replace("postgres://", "postgresql://", 1)

logger.info(f"Connecting to database: {db_url[:20]}...")  # Log partial URL for debugging

if db_url.startswith("sqlite"):
    # In-memory SQLite must share one connection across threads
    in_memory = db_url in ("sqlite://", "sqlite:///:memory:")
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if in_memory else None,
    )
else:
    engine = create_engine(
        db_url,
        echo=False,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
    )


def get_session():
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session


def init_db():
    """Initialize database tables."""
    SQLModel.metadata.create_all(engine)
