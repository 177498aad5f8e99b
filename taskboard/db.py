from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from .config import Settings
from .errors import StorageFailure, TaskboardError, TransactionAborted
from .logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(140))
    email: Mapped[str] = mapped_column(String(320))


class BoardRow(Base):
    __tablename__ = "boards"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(140))


class BoardUserRow(Base):
    __tablename__ = "board_users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("boards.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("board_id", "user_id", name="uq_board_member"),
    )


class ListRow(Base):
    __tablename__ = "lists"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(140))
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("boards.id", ondelete="CASCADE"), index=True)


class CardRow(Base):
    __tablename__ = "cards"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(50))
    description: Mapped[str] = mapped_column(String(255), default="")
    due_date: Mapped[date] = mapped_column(Date)
    list_id: Mapped[int] = mapped_column(Integer, ForeignKey("lists.id", ondelete="CASCADE"), index=True)


class CardUserRow(Base):
    __tablename__ = "card_users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(Integer, ForeignKey("cards.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    is_owner: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("card_id", "user_id", name="uq_card_user"),
        # one owner per card
        Index(
            "uq_card_owner",
            "card_id",
            unique=True,
            sqlite_where=text("is_owner"),
            postgresql_where=text("is_owner"),
        ),
    )


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    # transactions are opened by _on_sqlite_begin, not by the driver
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _on_sqlite_begin(conn: Connection) -> None:
    # writers take the write lock up front so they queue on the busy timeout;
    # readers use a deferred BEGIN and never wait for a writer
    if conn.get_execution_options().get("write_lock"):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: Settings) -> Engine:
    url = settings.database_url
    if url.startswith("sqlite"):
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.statement_timeout_ms / 1000,
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            # in-memory databases live on a single shared connection
            engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        else:
            engine = create_engine(
                url,
                connect_args=connect_args,
                pool_size=settings.pool_size,
                pool_timeout=settings.pool_timeout,
            )
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
        return engine
    return create_engine(
        url,
        connect_args={"options": f"-c statement_timeout={settings.statement_timeout_ms}"},
        pool_size=settings.pool_size,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,
    )


class Database:
    """Process-scoped handle over the engine and its connection pool.

    Built once by the application factory and handed to every request
    through ``app.state``.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(build_engine(settings))

    def init_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema initialized.")

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connection pool closed.")

    @contextmanager
    def connect(self, write: bool = False) -> Iterator[Connection]:
        """Check out a connection for reads or a single write statement.

        Callers issuing a write pass ``write=True`` and commit explicitly.
        Uncommitted work is rolled back when the connection goes back to
        the pool.
        """
        try:
            with self.engine.connect() as conn:
                if write:
                    conn.execution_options(write_lock=True)
                yield conn
        except SQLAlchemyError as e:
            logger.exception(f"Query failed: {e}")
            raise StorageFailure(e) from e

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Run a block as one all-or-nothing unit of work.

        Commits when the block exits normally and rolls back on any
        exception. The connection is returned to the pool on every path.
        Driver errors surface as ``TransactionAborted``; domain errors
        raised inside the block propagate unchanged after the rollback.
        """
        try:
            conn = self.engine.connect()
            conn.execution_options(write_lock=True)
        except SQLAlchemyError as e:
            logger.exception(f"Connection checkout failed: {e}")
            raise TransactionAborted(e) from e
        try:
            with conn.begin():
                yield conn
        except TaskboardError as e:
            logger.warning(f"Transaction rolled back: {e}")
            raise
        except Exception as e:
            logger.warning(f"Transaction rolled back: {e!r}")
            raise TransactionAborted(e) from e
        finally:
            conn.close()

    def ping(self) -> bool:
        with self.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1
