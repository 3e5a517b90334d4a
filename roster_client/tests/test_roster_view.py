"""
Tests for the client-side roster merge and the dashboard message handling.
"""

from unittest.mock import Mock

from roster_server import protocol

from ..app_main import DashboardApp
from ..roster_view import RosterView, render_table

USERS = [
    {"id": "1", "firstName": "Ada", "lastName": "Lovelace", "email": "Ada@Example.com",
     "city": "London", "country": "UK"},
    {"id": "2", "firstName": "Grace", "lastName": "Hopper", "email": "grace@example.com"},
]


class TestRosterView:

    def setup_method(self):
        self.view = RosterView()
        self.view.set_users(USERS)

    def test_everyone_offline_initially(self):
        assert [row["online"] for row in self.view.rows()] == [False, False]

    def test_live_update_matches_by_normalized_email(self):
        self.view.apply_live_users([{"connectionId": "c1", "email": "ada@example.com", "displayName": "Ada"}])

        assert [row["online"] for row in self.view.rows()] == [True, False]
        assert self.view.is_online(" ADA@example.com")

    def test_live_update_replaces_previous_state(self):
        self.view.apply_live_users([{"connectionId": "c1", "email": "ada@example.com"}])
        self.view.apply_live_users([{"connectionId": "c2", "email": "grace@example.com"}])

        assert [row["online"] for row in self.view.rows()] == [False, True]

    def test_two_sessions_same_user_count_once(self):
        self.view.apply_live_users([
            {"connectionId": "c1", "email": "ada@example.com"},
            {"connectionId": "c2", "email": "ada@example.com"},
        ])

        assert self.view.online_count() == 1

    def test_user_created_appends(self):
        self.view.apply_live_users([{"connectionId": "c1", "email": "new@example.com"}])

        self.view.add_user({"id": "3", "firstName": "New", "lastName": "User", "email": "new@example.com"})

        rows = self.view.rows()
        assert len(rows) == 3
        assert rows[-1]["online"] is True

    def test_render_table_shows_timestamps(self):
        self.view.set_users([dict(USERS[0], createdAt="2024-01-01 09:00:00", updatedAt="2024-02-02 10:00:00")])

        header, row = render_table(self.view.rows()).splitlines()

        assert header.endswith("Created | Updated | Status")
        assert row.endswith("2024-01-01 09:00:00 | 2024-02-02 10:00:00 | Offline")

    def test_render_table(self):
        self.view.apply_live_users([{"connectionId": "c1", "email": "ada@example.com"}])

        lines = render_table(self.view.rows()).splitlines()

        assert lines[0].startswith("First Name | Last Name")
        assert lines[1].endswith("Online")
        assert ", London, , UK" in lines[1]
        assert lines[2].endswith("Offline")


class TestDashboardApp:

    def setup_method(self):
        self.app = DashboardApp(email="ada@example.com", password="Engine!1")
        self.app.network_client = Mock()

    def test_connect_sends_viewer_join_list_and_login(self):
        assert self.app.handle_message({"type": "network_connected", "payload": {}}) is False

        sent = [c.args[0] for c in self.app.network_client.send.call_args_list]
        assert sent == [protocol.VIEWER_JOIN, protocol.LIST_USERS, protocol.LOGIN]

    def test_login_response_joins_live_users(self):
        self.app.handle_message({"type": protocol.RESPONSE, "payload": {
            "status": "ok", "request": protocol.LOGIN, "message": "Login successful",
            "user": {"email": "ada@example.com", "firstName": "Ada", "lastName": "Lovelace"},
        }})

        self.app.network_client.send.assert_called_once_with(protocol.JOIN_LIVE_USERS, {
            "email": "ada@example.com", "firstName": "Ada", "lastName": "Lovelace",
        })

    def test_updates_change_the_table(self):
        assert self.app.handle_message({"type": protocol.RESPONSE, "payload": {
            "status": "ok", "request": protocol.LIST_USERS, "users": USERS}})
        assert self.app.handle_message({"type": protocol.LIVE_USERS_UPDATE, "payload": [
            {"connectionId": "c1", "email": "grace@example.com", "displayName": "Grace Hopper"}]})
        assert self.app.handle_message({"type": protocol.USER_CREATED_DB, "payload": {
            "id": "3", "email": "x@example.com", "firstName": "X", "lastName": "Y"}})

        assert [row["online"] for row in self.app.view.rows()] == [False, True, False]

    def test_error_response_is_not_a_table_change(self):
        assert self.app.handle_message({"type": protocol.RESPONSE, "payload": {
            "status": "error", "request": protocol.LOGIN, "message": "Invalid email or password"}}) is False
        self.app.network_client.send.assert_not_called()

    def test_malformed_presence_event_is_ignored(self):
        self.app.view.set_users(USERS)
        self.app.view.apply_live_users([{"connectionId": "c1", "email": "ada@example.com"}])

        assert self.app.handle_message({"type": protocol.LIVE_USERS_UPDATE, "payload": None}) is False
        assert self.app.handle_message({"type": protocol.USER_CREATED_DB, "payload": "oops"}) is False

        assert [row["online"] for row in self.app.view.rows()] == [True, False]


class TestPresenceEventParsing:

    def test_roster_and_user_created_are_distinct_kinds(self):
        roster = protocol.parse_presence_event({"type": protocol.LIVE_USERS_UPDATE, "payload": [
            {"connectionId": "c1", "email": "a@x.com", "displayName": "A B"}]})
        created = protocol.parse_presence_event({"type": protocol.USER_CREATED_DB, "payload": {"id": "1"}})

        assert isinstance(roster, protocol.LiveUsersUpdate)
        assert roster.payload[0]["email"] == "a@x.com"
        assert isinstance(created, protocol.UserCreated)
        assert created.payload == {"id": "1"}

    def test_other_envelopes_are_not_presence_events(self):
        assert protocol.parse_presence_event({"type": protocol.RESPONSE, "payload": {}}) is None
        assert protocol.parse_presence_event({"type": ["live_users_update"]}) is None
