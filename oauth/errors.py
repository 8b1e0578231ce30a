"""Error taxonomy for the authorization and session core.

Every error carries the OAuth-style ``error`` code and the HTTP status it
is rendered with; endpoints and middleware turn them into responses.
"""


class MCPAuthError(Exception):
    """Base class for authorization and session errors."""

    error = "server_error"
    status_code = 500

    def __init__(self, description: str = ""):
        super().__init__(description or self.error)
        self.description = description

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return body


# ============== Gateway ==============

class MissingAuthorization(MCPAuthError):
    error = "unauthorized"
    status_code = 401


class InvalidToken(MCPAuthError):
    error = "forbidden"
    status_code = 403


# ============== Authorization Broker ==============

class UnsupportedResponseType(MCPAuthError):
    error = "unsupported_response_type"
    status_code = 400


class InvalidRedirectUri(MCPAuthError):
    error = "invalid_request"
    status_code = 400


class WrongPassword(MCPAuthError):
    error = "access_denied"
    status_code = 401


class ExpiredOrUnknownAuthorization(MCPAuthError):
    error = "invalid_request"
    status_code = 400


# ============== Token Registry ==============

class UnsupportedGrantType(MCPAuthError):
    error = "unsupported_grant_type"
    status_code = 400


class InvalidGrant(MCPAuthError):
    error = "invalid_grant"
    status_code = 400


# ============== Session Multiplexer ==============

class BadRequest(MCPAuthError):
    error = "bad_request"
    status_code = 400


class InvalidOrMissingSession(MCPAuthError):
    error = "invalid_session"
    status_code = 400
