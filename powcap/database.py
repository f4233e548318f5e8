from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from powcap.config import settings

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False},  # SQLite specific
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass
