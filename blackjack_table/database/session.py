import pathlib
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from blackjack_table.config import settings


class Base(DeclarativeBase):
    pass

_engine: AsyncEngine | None = None
_async_session: async_sessionmaker[AsyncSession] | None = None


def _ensure_data_dir(database_url: str):
    if database_url.startswith("sqlite") and ":memory:" not in database_url:
        path = pathlib.Path("data")
        path.mkdir(parents=True, exist_ok=True)


async def init_db(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    global _engine, _async_session
    database_url = database_url or settings.database_url
    _ensure_data_dir(database_url)
    _engine = create_async_engine(database_url, echo=False, future=True)
    _async_session = async_sessionmaker(_engine, expire_on_commit=False)

    # import models and create tables
    from . import models  # noqa: F401
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return _async_session


async def close_db() -> None:
    global _engine, _async_session
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session = None


def get_session() -> async_sessionmaker[AsyncSession]:
    assert _async_session is not None, "DB is not initialized"
    return _async_session


def async_session() -> AsyncSession:
    """Контекстный менеджер для получения сессии БД.

    Использование:
        async with async_session() as session:
            ...
    """
    assert _async_session is not None, "DB is not initialized"
    return _async_session()
