from contextlib import contextmanager
from typing import Optional

import redis
from flask import Flask
from flask_socketio import SocketIO
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

"""create uninitialized extension objects to avoid circular imports"""
Base = declarative_base()
engine = None
SessionLocal = None
socketio = SocketIO(cors_allowed_origins="*")

""" resources that require app config, created in init_... functions"""
redis_client: Optional[redis.Redis] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(app: Flask):
    """Initialize SQLAlchemy engine & session factory and create missing tables."""
    global engine, SessionLocal
    database_url = app.config.get("SQLALCHEMY_DATABASE_URI", "sqlite:///./lineup.db")

    engine_kwargs = {"echo": app.config.get("SQLALCHEMY_ECHO", False), "future": True}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

    from lineup.Database.user_models import User  # noqa: F401
    from lineup.Database.menu_item import MenuItem  # noqa: F401
    from lineup.Database.order import Order, OrderItem  # noqa: F401
    from lineup.Database.daily_token import DailyTokenCounter  # noqa: F401
    from lineup.utils.websocket_utils.change_stream import watch_changes

    watch_changes(factory)
    SessionLocal = scoped_session(factory)

    Base.metadata.create_all(bind=engine)
    return engine, SessionLocal


def init_redis(app: Flask):
    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        redis_client = None
        return None
    redis_client = redis.from_url(redis_url, decode_responses=True)
    return redis_client


def get_session():
    if SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db(app) first.")
    return SessionLocal()


@contextmanager
def session_scope():
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def emit_to_room(room: str, event: str, data: dict):
    """
    Emit a Socket.IO event to a specific room.
    Uses the globally initialized socketio instance.
    """
    socketio.emit(
        event,
        data,
        room=room,
    )
