# roster_server/protocol.py

"""
Event names and envelope framing shared by the server and the roster client.

Every frame on the wire is one JSON object terminated by a newline. Before the
handshake completes frames are plaintext; afterwards each frame is an
``encrypted_payload`` envelope whose payload decrypts to the real envelope.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# --- Inbound events (client -> server) ---
VIEWER_JOIN = "viewer_join"
JOIN_LIVE_USERS = "join_live_users"
REGISTER = "register"
LOGIN = "login"
LIST_USERS = "list_users"

# --- Outbound events (server -> client) ---
LIVE_USERS_UPDATE = "live_users_update"
USER_CREATED_DB = "user_created_db"
RESPONSE = "response"

# --- Handshake ---
HANDSHAKE_START = "handshake_start"
KEY_EXCHANGE = "key_exchange"
HANDSHAKE_COMPLETE = "handshake_complete"
ENCRYPTED_PAYLOAD = "encrypted_payload"


class LiveUsersUpdate(BaseModel):
    """Full roster; consumers replace their live state with it."""

    model_config = ConfigDict(frozen=True)

    type: Literal["live_users_update"] = LIVE_USERS_UPDATE
    payload: List[Dict[str, str]]


class UserCreated(BaseModel):
    """A single new stored user; consumers append it to their list."""

    model_config = ConfigDict(frozen=True)

    type: Literal["user_created_db"] = USER_CREATED_DB
    payload: Dict[str, Any]


PresenceEvent = Annotated[Union[LiveUsersUpdate, UserCreated], Field(discriminator="type")]

_presence_event_adapter = TypeAdapter(PresenceEvent)
PRESENCE_EVENT_TYPES = (LIVE_USERS_UPDATE, USER_CREATED_DB)


def parse_presence_event(envelope: Dict[str, Any]) -> Optional[PresenceEvent]:
    """
    Reads a presence broadcast into its tagged model.

    Returns None for envelopes of any other type. Raises ValueError if a
    presence envelope carries a malformed payload.
    """
    if envelope.get("type") not in PRESENCE_EVENT_TYPES:
        return None
    # pydantic.ValidationError is a ValueError
    return _presence_event_adapter.validate_python(envelope)


def make_envelope(event_type: str, payload: Any = None) -> Dict[str, Any]:
    return {"type": event_type, "payload": payload}


def make_response(status: str, request: str, message: str, **extra: Any) -> Dict[str, Any]:
    payload = {"status": status, "request": request, "message": message}
    payload.update(extra)
    return make_envelope(RESPONSE, payload)


def encode_frame(envelope: Dict[str, Any]) -> bytes:
    return (json.dumps(envelope) + "\n").encode("utf-8")


def decode_frame(line: bytes) -> Dict[str, Any]:
    """Parses one frame. Raises ValueError if it is not a JSON object."""
    envelope = json.loads(line.decode("utf-8"))
    if not isinstance(envelope, dict):
        raise ValueError("Frame is not a JSON object")
    return envelope
