from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from tracker_app.config import settings


# SQLite needs check_same_thread=False because FastAPI may touch the
# session from a different thread than the one that created it
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for one request and always close it"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
