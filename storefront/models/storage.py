import json
from contextlib import asynccontextmanager
from pathlib import Path
import aiosqlite

TOKEN_KEY = "jwt"
USER_KEY = "user"


@asynccontextmanager
async def _connect(db_path: str):
    """Yield a connection, creating the key-value table on first use."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS storage (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        yield db


# --- Key-value CRUD ---

async def get_item(db_path: str, key: str) -> str | None:
    """Read a stored value. Returns None if the key is absent."""
    async with _connect(db_path) as db:
        cursor = await db.execute("SELECT value FROM storage WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row[0] if row else None


async def set_item(db_path: str, key: str, value: str):
    """Insert or overwrite a value."""
    async with _connect(db_path) as db:
        await db.execute(
            """
            INSERT INTO storage (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = datetime('now')
            """,
            (key, value),
        )
        await db.commit()


async def remove_items(db_path: str, *keys: str):
    """Delete the given keys. Missing keys are ignored."""
    async with _connect(db_path) as db:
        await db.executemany("DELETE FROM storage WHERE key = ?", [(k,) for k in keys])
        await db.commit()


class SessionStorage:
    """Durable home of the session token and the cached user payload."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def get_token(self) -> str | None:
        return await get_item(self.db_path, TOKEN_KEY)

    async def set_token(self, token: str):
        await set_item(self.db_path, TOKEN_KEY, token)

    async def get_user(self) -> dict | None:
        raw = await get_item(self.db_path, USER_KEY)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_user(self, user: dict):
        await set_item(self.db_path, USER_KEY, json.dumps(user))

    async def clear(self):
        await remove_items(self.db_path, TOKEN_KEY, USER_KEY)
