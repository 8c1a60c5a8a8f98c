from __future__ import annotations


class FunnelError(Exception):
    """Base class for quiz funnel errors."""


class ConfigError(FunnelError):
    pass


class SessionNotInitialized(FunnelError):
    """Raised when the flow controller is used without a session state."""


class InvalidTransition(FunnelError):
    """Raised when an action is not valid for the current stage."""

    def __init__(self, action: str, stage: str):
        super().__init__(f"{action!r} is not allowed in stage {stage!r}")
        self.action = action
        self.stage = stage


class InvalidEmail(FunnelError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackendError(FunnelError):
    """Transport or HTTP failure talking to the hosted backend."""


class LeadCaptureError(FunnelError):
    """Both the lead insert and its backup invocation failed."""
