from __future__ import annotations


class SessionError(Exception):
    reason = "SessionError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(SessionError):
    reason = "NotFound"


class ParseError(SessionError):
    reason = "ParseError"


class InvalidFormatError(SessionError):
    reason = "InvalidFormat"


class SessionIOError(SessionError):
    reason = "IoError"


class GistError(Exception):
    """Failure talking to GitHub. reason is one of: auth, api, network, cli."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
