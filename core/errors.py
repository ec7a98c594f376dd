"""Error taxonomy shared by the agent core and its OS/service boundaries."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for recoverable agent failures."""

    kind = "agent_error"


class PermissionDeniedError(AgentError):
    """The OS refused an automation, capture, or clipboard call."""

    kind = "permission_denied"
    remediation = (
        "Grant access in System Settings > Privacy & Security > Accessibility "
        "and Screen Recording, then retry."
    )


class NoActiveSessionError(AgentError):
    """An operation needed session fields but the session is empty."""

    kind = "no_active_session"


class NoMatchingWindowError(AgentError):
    """The requested window or owning process is not visible."""

    kind = "no_matching_window"


class ExternalServiceError(AgentError):
    """Capture, extraction, or Record API call failed."""

    kind = "external_service"


class StateConflictError(AgentError):
    """A re-entrant operation was rejected."""

    kind = "state_conflict"


def error_kind(exc: BaseException) -> str:
    """Return the stable kind string for an exception."""
    if isinstance(exc, AgentError):
        return exc.kind
    return "unexpected"
