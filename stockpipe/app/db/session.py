from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockpipe.app.core.config import settings

DATABASE_URL = settings.DATABASE_URL

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
