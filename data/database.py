"""
Database connection and session management.

Provides utilities for creating database engine, sessions, and table initialization.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .db_models import Base


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: str):
        """
        Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL
        """
        self.database_url = database_url

        # SQLite sessions are opened from worker threads (asyncio.to_thread)
        if self.database_url.startswith('sqlite'):
            engine_kwargs = {'connect_args': {'check_same_thread': False}}
            if ':memory:' in self.database_url or self.database_url == 'sqlite://':
                # One shared connection, otherwise each thread gets an empty database
                engine_kwargs['poolclass'] = StaticPool
            self.engine = create_engine(self.database_url, echo=False, **engine_kwargs)
        else:
            self.engine = create_engine(self.database_url, echo=False)

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(bind=self.engine)

    def get_session(self) -> Session:
        """
        Get a new database session.

        Remember to close the session when done, or use session() instead.
        """
        return self.SessionLocal()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions.

        Automatically commits on success and rolls back on exception.

        Usage:
            with db_manager.session() as session:
                # ... use session ...
                # Automatically commits when exiting normally
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self):
        """Close all pooled connections."""
        self.engine.dispose()
