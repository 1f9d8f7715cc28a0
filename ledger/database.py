"""
filename: database.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for everything database/engine/sessions related.
"""

import logging
from contextlib import contextmanager
from typing import Annotated

from fastapi import Depends, HTTPException
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ledger.config import settings
from ledger.errors import InternalError

logger = logging.getLogger(__name__)


def build_engine(database_url: str, timeout: float = settings.database_timeout) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL. SQLite connections are shared between
    request threads, and every transaction on them starts with "BEGIN IMMEDIATE": the first
    statement of a session, the lock-read of an update or delete included, takes the database
    write lock, and other sessions wait up to <timeout> seconds for it. Other backends wait
    the same amount of time for a free pooled connection and rely on SELECT ... FOR UPDATE.

    :param database_url: (str) SQLAlchemy database URL.
    :param timeout: (float) optional; seconds to wait for a lock or a connection.
    :returns: (Engine) the new engine.
    """
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url, connect_args={"check_same_thread": False, "timeout": timeout}
        )

        @event.listens_for(sqlite_engine, "connect")
        def disable_pysqlite_begin(dbapi_connection, connection_record):
            # pysqlite would otherwise defer BEGIN until the first write
            dbapi_connection.isolation_level = None

        @event.listens_for(sqlite_engine, "begin")
        def begin_immediate(connection):
            connection.exec_driver_sql("BEGIN IMMEDIATE")

        return sqlite_engine
    return create_engine(database_url, pool_timeout=timeout, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Request session rolled back after an unexpected error")
        raise InternalError() from e
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]


@contextmanager
def unit_of_work(db: Session):
    """
    All-or-nothing execution boundary over the given session: commits when the block exits
    normally and rolls back every statement issued in it (row writes and balance deltas
    alike) when anything is raised. Ledger errors propagate untouched; any other failure is
    logged and surfaced as a generic InternalError.

    :param db: (Session) SQLAlchemy ORM session every participating call must use.
    """
    try:
        yield db
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Unit of work rolled back")
        raise InternalError() from e
