from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session
from inkpost.config.settings import settings


def make_engine(url: str):
    """create the engine for the local cache database"""
    connect_args = {}
    if url.startswith("sqlite"):
        # the engine is shared between the event loop and worker threads
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, echo=False)


engine = make_engine(settings.CACHE_DB_URL)

# session factory (scoped session if multithreaded or async)
SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))

