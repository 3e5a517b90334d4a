# roster_server/auth.py

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import bcrypt

if TYPE_CHECKING:
    from .db_async import Database

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """
    Hashes a password using bcrypt.
    Returns the hash as a UTF-8 string suitable for storing in the DB.
    """
    hashed_bytes = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed_bytes.decode("utf-8")


def check_password(password: str, hashed_password: str) -> bool:
    """Checks if a plain-text password matches a stored hash."""
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


class Authenticator:
    """
    Checks login credentials against the user store. Email is the login key.
    """

    def __init__(self, db: "Database"):
        self.db = db

    async def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Returns the user (without its password) on success, otherwise None.
        """
        normalized_email = email.strip().lower()
        user = await self.db.get_user_by_email(normalized_email)

        if not user:
            logger.info("Authentication failed: no user with email '%s'.", normalized_email)
            return None

        stored_hash = user.pop("password")
        if check_password(password, stored_hash):
            logger.info("Authentication successful for user '%s'.", normalized_email)
            return user

        logger.info("Authentication failed: invalid password for user '%s'.", normalized_email)
        return None
