from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy import Column, DateTime, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from quickcart.utils.security import get_token_expiry

logger = logging.getLogger(__name__)

Base = declarative_base()


class StoredTokens(Base):
    __tablename__ = "auth_tokens"
    # Single-row table: the client holds one session at a time
    id = Column(Integer, primary_key=True)
    access_token = Column(String(2048), nullable=True)
    refresh_token = Column(String(2048), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


@dataclass(frozen=True)
class AuthSession:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token

    @property
    def access_expires_at(self) -> Optional[datetime]:
        return get_token_expiry(self.access_token)


class SessionStore:
    """In-memory token pair.

    Only the auth interceptor writes to a store; everything else reads the
    session through the interceptor. Each call reads or replaces the whole
    pair so readers never see a half-updated session.
    """

    def __init__(self, session: Optional[AuthSession] = None):
        self._session = session or AuthSession()

    def get(self) -> AuthSession:
        return self._session

    def set(self, access_token: str, refresh_token: Optional[str] = None) -> AuthSession:
        # Keep the current refresh token unless the server rotated it
        current = self.get()
        session = AuthSession(access_token=access_token, refresh_token=refresh_token or current.refresh_token)
        self._write(session)
        return session

    def clear(self) -> None:
        self._write(AuthSession())

    def dispose(self) -> None:
        pass

    def _write(self, session: AuthSession) -> None:
        self._session = session


class SqlSessionStore(SessionStore):
    """Token pair persisted in a SQL database so a session survives restarts."""

    ROW_ID = 1

    def __init__(self, database_url: str):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, future=True, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, future=True)
        Base.metadata.create_all(bind=self.engine)
        super().__init__(self._load())

    def _load(self) -> AuthSession:
        db = self.SessionLocal()
        try:
            row = db.get(StoredTokens, self.ROW_ID)
            if not row:
                return AuthSession()
            return AuthSession(access_token=row.access_token, refresh_token=row.refresh_token)
        finally:
            db.close()

    def _write(self, session: AuthSession) -> None:
        db = self.SessionLocal()
        try:
            row = db.get(StoredTokens, self.ROW_ID)
            if not row:
                row = StoredTokens(id=self.ROW_ID)
                db.add(row)
            row.access_token = session.access_token
            row.refresh_token = session.refresh_token
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Failed to persist session tokens", exc_info=True)
            raise
        finally:
            db.close()
        super()._write(session)

    def dispose(self) -> None:
        self.engine.dispose()
