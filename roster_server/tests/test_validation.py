"""
Tests for registration field sanitization and validation.
"""

import pytest

from ..errors import ValidationError
from ..validation import clean_registration
from .helpers import valid_registration


class TestCleanRegistration:

    def test_valid_form_is_trimmed_and_normalized(self):
        fields = clean_registration(valid_registration(firstName="  Ada ", email=" ADA@Example.com "))

        assert fields["firstName"] == "Ada"
        assert fields["email"] == "ada@example.com"
        assert set(fields) == {
            "firstName", "lastName", "mobile", "email", "street", "city",
            "state", "country", "loginId", "password",
        }

    def test_unknown_fields_are_dropped(self):
        fields = clean_registration(valid_registration(isAdmin="yes"))

        assert "isAdmin" not in fields

    @pytest.mark.parametrize("field, message", [
        ("firstName", "First Name is required"),
        ("mobile", "Mobile is required"),
        ("loginId", "Login ID is required"),
        ("password", "Password is required"),
    ])
    def test_missing_field(self, field, message):
        with pytest.raises(ValidationError, match=message):
            clean_registration(valid_registration(**{field: "   "}))

    def test_required_checks_run_before_format_checks(self):
        with pytest.raises(ValidationError, match="Country is required"):
            clean_registration(valid_registration(firstName="Ada1", country=None))

    @pytest.mark.parametrize("field, value, message", [
        ("firstName", "Ada Mary", "First Name must contain only letters"),
        ("lastName", "O'Neil", "Last Name must contain only letters"),
        ("mobile", "12345", "Mobile must be 10 digits"),
        ("mobile", "01234567890", "Mobile must be 10 digits"),
        ("email", "not-an-email", "Invalid Email format"),
        ("street", "12 Main St #4", "Street can only have"),
        ("city", "L0ndon", "City must contain only letters"),
        ("loginId", "short", "Login ID must be exactly 8 alphanumeric characters"),
        ("loginId", "ada_1234", "Login ID must be exactly 8 alphanumeric characters"),
        ("password", "engine!1", "Password must be 6\\+ chars"),
        ("password", "ENGINE!1", "Password must be 6\\+ chars"),
        ("password", "Engine11", "Password must be 6\\+ chars"),
        ("password", "En!1", "Password must be 6\\+ chars"),
    ])
    def test_bad_format(self, field, value, message):
        with pytest.raises(ValidationError, match=message):
            clean_registration(valid_registration(**{field: value}))

    def test_underscore_counts_as_special_character(self):
        assert clean_registration(valid_registration(password="Engine_1"))["password"] == "Engine_1"

    def test_non_mapping_payload(self):
        with pytest.raises(ValidationError):
            clean_registration(["not", "a", "form"])

    @pytest.mark.parametrize("password", ["Abcdeé", "abcDeé"])
    def test_non_ascii_character_counts_as_special(self, password):
        assert clean_registration(valid_registration(password=password))["password"] == password
