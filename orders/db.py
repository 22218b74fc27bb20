"""
PostgreSQL connection management and the unit of work used for writes
"""
import time
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from orders.config import Config
from orders.errors import TransactionError


logger = structlog.get_logger()

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine, connection pool and session factory"""
    
    def __init__(self, database_url: str, **engine_kwargs):
        self.database_url = database_url
        self.engine: Engine = create_engine(database_url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        # Rows handed back to callers stay readable after commit/close
        self.session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False
        )
    
    @classmethod
    def from_config(cls, config: Config) -> "Database":
        """Build a pooled engine from service configuration"""
        return cls(
            config.database_url,
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=True,
            echo=config.db_echo
        )
    
    def create_tables(self, max_retries: int = 10, retry_delay: float = 5.0) -> bool:
        """Create tables, retrying while the database comes up"""
        # Register ORM tables on Base.metadata
        from orders.models import order_model, order_item_model  # noqa: F401
        
        for attempt in range(1, max_retries + 1):
            try:
                logger.info("Creating tables", attempt=attempt)
                Base.metadata.create_all(bind=self.engine)
                logger.info("Tables created")
                return True
            except Exception as e:
                logger.error("Error creating tables", attempt=attempt, error=str(e))
                if attempt < max_retries:
                    time.sleep(retry_delay)
        
        logger.error("Could not create tables after all attempts", attempts=max_retries)
        return False
    
    def session(self) -> Session:
        """Open a new session"""
        return self.session_factory()
    
    def is_healthy(self) -> bool:
        """Check if the database answers a trivial query"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False
    
    def close(self) -> None:
        """Dispose of pooled connections"""
        self.engine.dispose()
        logger.info("Database connections closed")


class UnitOfWork:
    """
    Transaction scope for a group of writes.
    
    Commits when the block exits cleanly; rolls back on any exception so no
    partial write survives, then re-raises.  The session is always closed.
    
        with UnitOfWork(database.session_factory) as uow:
            uow.session.add(row)
    """
    
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.session: Optional[Session] = None
    
    def __enter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        return self
    
    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                try:
                    self.session.commit()
                except SQLAlchemyError as e:
                    self.session.rollback()
                    logger.error("Commit failed, transaction rolled back", error=str(e))
                    raise TransactionError(
                        "Transaction rolled back",
                        error=str(e)
                    ) from e
            else:
                self.session.rollback()
                logger.warning("Unit of work rolled back", error=str(exc))
        finally:
            self.session.close()
        return False
