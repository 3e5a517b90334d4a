# roster_client/roster_view.py

import threading
from typing import Any, Dict, Iterable, List, Optional, Set


def _email_key(user: Dict[str, Any]) -> str:
    return str(user.get("email") or "").strip().lower()


class RosterView:
    """
    Client-side dashboard state: every stored user plus who is online.

    A live_users_update replaces the online set; a user_created_db appends
    one user. Users are matched to presence records by normalized email.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._users: List[Dict[str, Any]] = []
        self._online: Set[str] = set()
        self.current_user: Optional[Dict[str, Any]] = None

    def set_users(self, users: Iterable[Dict[str, Any]]) -> None:
        with self._lock:
            self._users = list(users)

    def add_user(self, user: Dict[str, Any]) -> None:
        with self._lock:
            self._users.append(user)

    def apply_live_users(self, records: Iterable[Dict[str, Any]]) -> None:
        online = {_email_key(r) for r in records if _email_key(r)}
        with self._lock:
            self._online = online

    def is_online(self, email: str) -> bool:
        with self._lock:
            return email.strip().lower() in self._online

    def rows(self) -> List[Dict[str, Any]]:
        """Each known user with an added `online` flag, in list order."""
        with self._lock:
            return [dict(user, online=_email_key(user) in self._online) for user in self._users]

    def online_count(self) -> int:
        return sum(1 for row in self.rows() if row["online"])


def format_address(user: Dict[str, Any]) -> str:
    parts = (user.get(k) or "" for k in ("street", "city", "state", "country"))
    return ", ".join(parts)


def render_table(rows: List[Dict[str, Any]]) -> str:
    """Plain text dashboard table."""
    header = ("First Name", "Last Name", "Mobile", "Email", "Address", "Login ID", "Created", "Updated", "Status")
    lines = [" | ".join(header)]
    for row in rows:
        lines.append(" | ".join((
            row.get("firstName") or "",
            row.get("lastName") or "",
            row.get("mobile") or "",
            row.get("email") or "",
            format_address(row),
            row.get("loginId") or "",
            str(row.get("createdAt") or ""),
            str(row.get("updatedAt") or ""),
            "Online" if row["online"] else "Offline",
        )))
    return "\n".join(lines)
