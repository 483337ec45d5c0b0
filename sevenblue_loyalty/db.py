from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from sevenblue_loyalty.config import get_settings


def build_engine(database_url: str):
    url = make_url(database_url)

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args = {"options": "-c timezone=utc"}
    elif url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}

    return create_engine(url, connect_args=connect_args)


engine = build_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
