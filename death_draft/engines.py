import pathlib

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from death_draft.load_secrets import db_name, host, password, port, sqlite_path, user


def postgres_url() -> str:
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"


def sqlite_url() -> str:
    """SQLite file URL; relative paths are resolved from the project root."""
    file_path = pathlib.Path(sqlite_path)
    if not file_path.is_absolute():
        file_path = pathlib.Path(__file__).parents[1] / file_path
    return f"sqlite+aiosqlite:///{file_path}"


def create_engine_for(backend: str) -> AsyncEngine:
    """Build the async engine for `postgres` or `sqlite`

    Args:
        backend (str): Value of DB_BACKEND

    Returns:
        AsyncEngine: Engine shared by every session
    """
    if backend == "sqlite":
        return create_async_engine(url=sqlite_url(), echo=False)
    if backend == "postgres":
        # One pool serves the pick transactions and every mounted view.
        return create_async_engine(postgres_url(), pool_size=20, max_overflow=20)
    raise ValueError(f"Unsupported DB_BACKEND: {backend!r}")
