from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect, text

from app.database import Database


def _initialise_legacy_schema(database_path: str) -> None:
    """Create a legacy games table without the Steam bookkeeping columns."""

    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.begin() as connection:
            connection.execute(
                text(
                    """
                    CREATE TABLE games (
                        id INTEGER PRIMARY KEY,
                        user_id VARCHAR(64) NOT NULL,
                        title VARCHAR(300) NOT NULL,
                        platform VARCHAR(64) NOT NULL,
                        genres JSON,
                        list VARCHAR(64),
                        image_url VARCHAR(1024),
                        release_date VARCHAR(32),
                        estimated_playtime INTEGER,
                        created_at DATETIME,
                        updated_at DATETIME
                    )
                    """
                )
            )
            connection.execute(
                text(
                    "INSERT INTO games (user_id, title, platform, list) VALUES "
                    "('user-1', 'Portal', 'PC', 'Backlog'), "
                    "('user-1', 'Zelda', 'Nintendo Switch', 'Backlog')"
                )
            )
    finally:
        engine.dispose()


def test_create_all_adds_steam_columns(tmp_path) -> None:
    """Schema migrations should add and backfill the Steam columns."""

    database_path = tmp_path / "legacy.db"
    _initialise_legacy_schema(str(database_path))

    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("games")}
        with inspector_engine.connect() as connection:
            compat = dict(
                connection.execute(text("SELECT title, steam_deck_compat FROM games")).all()
            )
    finally:
        inspector_engine.dispose()

    assert {"steam_app_id", "steam_deck_compat"} <= columns
    assert compat == {"Portal": "unknown", "Zelda": None}


def test_create_all_is_idempotent(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}")

    async def run() -> None:
        await database.create_all()
        await database.create_all()
        await database.dispose()

    asyncio.run(run())
