# roster_server/users.py

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from .auth import hash_password
from .models import UserSummary
from .validation import clean_registration

if TYPE_CHECKING:
    from .db_async import Database

logger = logging.getLogger(__name__)

UserCreatedCallback = Callable[[UserSummary], Any]


class UserService:
    """
    Registration and listing on top of the user store.

    After a user is stored, `on_created` is called with its public summary so
    live viewers can be told about it.
    """

    def __init__(self, db: "Database", on_created: Optional[UserCreatedCallback] = None):
        self.db = db
        self.on_created = on_created

    async def register(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validates and stores a new user, returning it without its password.

        Raises ValidationError or DuplicateUserError.
        """
        fields = clean_registration(raw)
        fields["password"] = hash_password(fields["password"])
        user = await self.db.create_user(fields)
        logger.info("Registered user '%s'", user["email"])

        if self.on_created is not None:
            self.on_created(UserSummary.from_user(user))
        return user

    async def list_users(self) -> List[Dict[str, Any]]:
        return await self.db.list_users()
