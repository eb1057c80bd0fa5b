"""Async engine, session factory and schema registration for the predictions DB."""

import importlib
import ssl
from typing import Any, AsyncGenerator, Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from predictions.config import settings

# Table modules, parents before children. Importing them fills SQLModel.metadata.
SCHEMA_MODULES = (
    "seasons",
    "users",
    "teams",
    "participations",
    "gameweeks",
    "fixtures",
    "pick_rules",
    "picks",
    "eliminations",
    "notifications",
    "admin_actions",
)


def register_schemas() -> None:
    """Import every table module so ``SQLModel.metadata`` knows all tables."""
    for name in SCHEMA_MODULES:
        importlib.import_module(f"predictions.schemas.{name}")


def _normalize_db_url(url: str) -> str:
    """Select the asyncpg driver for bare ``postgres://`` / ``postgresql://`` URLs.

    URLs that already name a driver (``sqlite+aiosqlite``, ``postgresql+psycopg``)
    are returned unchanged.
    """
    try:
        u = make_url(url)
    except ArgumentError:
        return url
    if u.drivername.lower() in ("postgres", "postgresql"):
        u = u.set(drivername="postgresql+asyncpg")
    return u.render_as_string(hide_password=False)


def _ssl_for_sslmode(mode: str) -> Optional[Any]:
    """Translate a libpq ``sslmode`` into asyncpg's ``ssl`` argument."""
    mode = mode.lower()
    if mode == "disable":
        return False
    if mode in ("allow", "prefer"):
        return None
    context = ssl.create_default_context()
    if mode == "require":
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    elif mode == "verify-ca":
        context.check_hostname = False
    return context


def _prepare_asyncpg_connection(url: str) -> Tuple[str, Dict[str, Any]]:
    """Strip libpq-only query args (asyncpg rejects them) and derive connect kwargs."""
    normalized = _normalize_db_url(url)
    if not normalized.startswith("postgresql"):
        return normalized, {}
    split = urlsplit(normalized)

    sslmode = None
    kept = []
    for key, value in parse_qsl(split.query, keep_blank_values=True):
        if key == "sslmode":
            sslmode = value
        elif key != "channel_binding":
            kept.append((key, value))

    cleaned_url = urlunsplit(split._replace(query=urlencode(kept, doseq=True))).rstrip("?")
    connect_args: Dict[str, Any] = {}
    if sslmode:
        ssl_arg = _ssl_for_sslmode(sslmode)
        if ssl_arg is not None:
            connect_args["ssl"] = ssl_arg
    return cleaned_url, connect_args


DATABASE_URL, CONNECT_ARGS = _prepare_asyncpg_connection(settings.database_url)

engine = create_async_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=CONNECT_ARGS,
)
# expire_on_commit=False: services hand committed rows to response models
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session with no open transaction; each service opens its own."""
    async with SessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create any missing tables (dev only; deployments run alembic)."""
    register_schemas()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


def describe_database_url(url: str) -> str:
    """Return a log-safe ``driver://user@host:port/db``; passwords are never included."""
    try:
        u = make_url(url)
    except ArgumentError:
        return "<unparseable database URL>"
    port = f":{u.port}" if u.port else ""
    return f"{u.drivername}://{u.username or '?'}@{u.host or '?'}{port}/{u.database or '?'}"
