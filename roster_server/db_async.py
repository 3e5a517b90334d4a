# roster_server/db_async.py

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import aiosqlite

from .errors import DuplicateUserError

logger = logging.getLogger(__name__)

# Columns returned to callers; the password hash is never among them.
PUBLIC_COLUMNS = (
    "id", "firstName", "lastName", "mobile", "email", "street", "city",
    "state", "country", "loginId", "createdAt", "updatedAt",
)


class Database:
    """
    Asynchronous wrapper around the SQLite user store.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        logger.debug("Database will be initialized at: %s", self.db_path)

    async def connect(self):
        try:
            self._conn = await aiosqlite.connect(self.db_path)
            self._conn.row_factory = aiosqlite.Row
            logger.info("Database connection successful.")
            await self._initialize_schema()
        except Exception:
            logger.exception("Error connecting to database at %s", self.db_path)
            raise

    async def close(self):
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed.")

    async def _initialize_schema(self):
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                firstName TEXT NOT NULL,
                lastName TEXT NOT NULL,
                mobile TEXT UNIQUE NOT NULL,
                email TEXT UNIQUE NOT NULL,
                street TEXT,
                city TEXT,
                state TEXT,
                country TEXT,
                loginId TEXT,
                password TEXT NOT NULL,
                createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updatedAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await self._conn.commit()
        logger.debug("Schema initialized successfully.")

    def _generate_user_id(self, email: str) -> str:
        """Deterministic UUID5 generated from the normalized email."""
        return str(uuid.uuid5(uuid.NAMESPACE_DNS, email.strip().lower()))

    async def _exists(self, column: str, value: str) -> bool:
        cursor = await self._conn.execute(f"SELECT 1 FROM users WHERE {column} = ?", (value,))
        return await cursor.fetchone() is not None

    async def create_user(self, fields: Mapping[str, str]) -> Dict[str, Any]:
        """
        Stores a new user. `fields` must already be validated and carry a
        hashed password. Returns the stored user without the password.

        Raises DuplicateUserError if the email or mobile is taken.
        """
        if await self._exists("email", fields["email"]):
            raise DuplicateUserError("Email already exists!")
        if await self._exists("mobile", fields["mobile"]):
            raise DuplicateUserError("Mobile already exists!")

        user_id = self._generate_user_id(fields["email"])
        try:
            await self._conn.execute(
                """
                INSERT INTO users (id, firstName, lastName, mobile, email, street,
                                   city, state, country, loginId, password)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id, fields["firstName"], fields["lastName"], fields["mobile"],
                    fields["email"], fields.get("street"), fields.get("city"),
                    fields.get("state"), fields.get("country"), fields.get("loginId"),
                    fields["password"],
                ),
            )
            await self._conn.commit()
        except aiosqlite.IntegrityError as e:
            # Lost a race against a concurrent insert with the same key.
            raise DuplicateUserError("Duplicate key error") from e

        logger.info("User '%s' added with ID: %s", fields["email"], user_id)
        return await self.get_user_by_id(user_id)

    async def list_users(self) -> List[Dict[str, Any]]:
        """All users, oldest first, without passwords."""
        cursor = await self._conn.execute(
            f"SELECT {', '.join(PUBLIC_COLUMNS)} FROM users ORDER BY createdAt, rowid"
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        cursor = await self._conn.execute(
            f"SELECT {', '.join(PUBLIC_COLUMNS)} FROM users WHERE id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Fetches a user by email, including the password hash."""
        cursor = await self._conn.execute(
            "SELECT * FROM users WHERE email = ?",
            (email,),
        )
        row = await cursor.fetchone()
        return dict(row) if row else None
