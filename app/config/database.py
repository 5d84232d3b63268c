"""Database configuration and connection setup"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from app.config.settings import get_settings

settings = get_settings()


def build_engine(database_url: str):
    """Create an engine; connection pooling only applies to server databases"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


# Create database engine with connection pooling
engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all tables and the PostgreSQL extensions the schema relies on"""
    from app.models import Base

    if engine.dialect.name == "postgresql":
        print("Creating required extensions...")
        with engine.connect() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist;"))
            conn.commit()

    print("Creating all tables...")
    Base.metadata.create_all(bind=engine)

    print("✅ Database tables created successfully!")


if __name__ == "__main__":
    create_tables()
