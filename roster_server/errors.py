# roster_server/errors.py


class RosterError(Exception):
    """Base class for all errors raised by the roster server."""


class ValidationError(RosterError):
    """A registration field is missing or has the wrong format."""


class DuplicateUserError(RosterError):
    """A user with the same email or mobile already exists."""


class HandshakeError(RosterError):
    """The secure channel could not be established with a peer."""
