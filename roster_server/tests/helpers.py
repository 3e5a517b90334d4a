"""
Test doubles and sample data shared by the roster server tests.
"""

from typing import Any, Dict, List


class FakeSubscriber:
    """Records delivered events instead of writing to a socket."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        self.events: List[Dict[str, Any]] = []

    def deliver(self, event: Dict[str, Any]) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]


class BrokenSubscriber(FakeSubscriber):
    def deliver(self, event: Dict[str, Any]) -> None:
        raise ConnectionError("socket gone")


def valid_registration(**overrides) -> Dict[str, str]:
    fields = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "mobile": "0123456789",
        "email": "Ada@Example.com",
        "street": "12 Analytical St.",
        "city": "London",
        "state": "Greater London",
        "country": "United Kingdom",
        "loginId": "ada12345",
        "password": "Engine!1",
    }
    fields.update(overrides)
    return fields
