import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from learnhub.core.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


# -----------------------
# Engine / session factory
# -----------------------
def create_db_engine(settings: Settings) -> Engine:
    url = make_url(settings.sqlalchemy_url)
    # Hide password in logs
    logger.info(f"Connecting to database: {url.render_as_string(hide_password=True)}")

    if url.get_backend_name() == "sqlite":
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
