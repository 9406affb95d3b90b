from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from fastapi import Request
from alembic import command
from alembic.config import Config
from typing import Optional
import asyncio
import logging
import os

from storefront.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Build the engine once per process; sqlite URLs are only used by tests and local runs"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        connect_args={
            "connect_timeout": 5,  # 5 second connection timeout
        },
        pool_timeout=10,  # 10 second timeout for getting a connection from pool
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """Dependency for getting database session"""
    session_factory: Optional[sessionmaker] = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        # DATABASE_URL was missing at startup; surfaces as a 500 on first use
        raise RuntimeError("Database is not configured (DATABASE_URL is not set)")

    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def _display_url(database_url: str) -> str:
    if '@' in database_url:
        return database_url.split('@')[-1]
    return database_url


async def wait_for_database(engine: Engine, max_retries=30, retry_delay=2):
    """Wait for database to be available with retry logic"""
    logger.info(f"Waiting for database connection to {_display_url(str(engine.url))}...")

    for attempt in range(1, max_retries + 1):
        try:
            with engine.connect() as conn:
                result = conn.execute(text("SELECT 1"))
                result.fetchone()
            logger.info("Database connection successful")
            return True
        except Exception as e:
            if attempt < max_retries:
                logger.warning(f"Database connection attempt {attempt}/{max_retries} failed: {e}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                raise
    return False


def _find_alembic_ini() -> str:
    alembic_ini_path = "alembic.ini"
    if os.path.exists(alembic_ini_path):
        return alembic_ini_path

    # storefront/db/database.py -> <project root>/alembic.ini
    file_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(file_dir))
    alembic_ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(alembic_ini_path):
        raise FileNotFoundError(
            f"Could not find alembic.ini. Current directory: {os.getcwd()}, "
            f"Tried: alembic.ini and {alembic_ini_path}"
        )
    return alembic_ini_path


async def init_db(settings: Settings, engine: Engine):
    """Initialize database by running Alembic migrations"""
    logger.info("Running database migrations...")

    await wait_for_database(engine, max_retries=30, retry_delay=2)

    alembic_ini_path = _find_alembic_ini()
    logger.info(f"Using Alembic config: {os.path.abspath(alembic_ini_path)}")

    alembic_cfg = Config(alembic_ini_path)
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    alembic_cfg.attributes["configure_logger"] = False

    try:
        await asyncio.wait_for(
            asyncio.to_thread(command.upgrade, alembic_cfg, "head"),
            timeout=60.0  # 60 second timeout for migrations
        )
    except asyncio.TimeoutError:
        logger.error("Database migrations timed out after 60 seconds")
        raise
    except Exception as migration_error:
        logger.error(f"Migration error: {migration_error}", exc_info=True)
        raise

    logger.info("Database migrations completed successfully")
