from typing import Iterator
from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from crowdfund.models import Base
import structlog
import time

logger = structlog.get_logger(__name__)


class Database:
    """Engine and session factory with an explicit lifetime (created at startup, closed at shutdown)"""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.is_sqlite = database_url.startswith("sqlite")

        if self.is_sqlite:
            engine_kwargs = {
                "connect_args": {"check_same_thread": False, "timeout": 30},
            }
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_size": 20,
                "max_overflow": 30,
                "pool_pre_ping": True,
                "pool_recycle": 300,
            }

        self.engine = create_engine(database_url, echo=echo, **engine_kwargs)

        if self.is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def wait_for_db(self, max_retries: int = 30, delay: float = 2) -> bool:
        """Wait for database to be available with retries"""
        for attempt in range(max_retries):
            try:
                self.ping()
                logger.info("Database connection established")
                return True
            except Exception as e:
                logger.warning(
                    "Database connection attempt failed",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=str(e)
                )
                if attempt < max_retries - 1:
                    time.sleep(delay)
                else:
                    logger.error("Failed to connect to database after all retries")
                    raise
        return False

    def init_db(self, max_retries: int = 30):
        """Create tables once the database is reachable"""
        try:
            self.wait_for_db(max_retries=max_retries)
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error("Failed to create database tables", error=str(e))
            raise

    def ping(self):
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def session(self) -> Session:
        return self.SessionLocal()

    def close(self):
        self.engine.dispose()
        logger.info("Database connection closed")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db(request: Request) -> Iterator[Session]:
    """Dependency to get a database session for one request"""
    db = request.app.state.database.session()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
