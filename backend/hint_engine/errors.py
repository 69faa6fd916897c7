from __future__ import annotations


class HintEngineError(Exception):
    code = "error"
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_response(self) -> dict:
        return {"success": False, "error": self.message, "code": self.code}


class InsufficientCredits(HintEngineError):
    code = "insufficient_credits"
    default_message = "Insufficient credits. Please top up your account."


class NoCredits(HintEngineError):
    code = "no_credits"
    default_message = "No credits remaining."


class SessionNotFound(HintEngineError):
    code = "session_not_found"
    default_message = "Session not found."


class InvalidTransition(HintEngineError):
    code = "invalid_transition"
    default_message = "Session cannot move to the requested state."


class NoActiveSession(HintEngineError):
    code = "no_active_session"
    default_message = "No active session. Please start or resume a session."


class Debounced(HintEngineError):
    code = "debounced"
    default_message = "Please wait before requesting another hint."


class RequestInProgress(HintEngineError):
    code = "request_in_progress"
    default_message = "Request already in progress."


class PersistenceError(HintEngineError):
    code = "persistence_error"
    default_message = "Could not reach the session ledger."


class ProviderError(HintEngineError):
    code = "provider_error"
    default_message = "The AI provider failed to respond."


class ProviderUnconfigured(ProviderError):
    code = "provider_unconfigured"
    default_message = "No AI provider is configured."


class ProviderUnauthorized(ProviderError):
    code = "provider_unauthorized"
    default_message = "The AI provider rejected the API key."


class ProviderRateLimited(ProviderError):
    code = "provider_rate_limited"
    default_message = "The AI provider is rate limiting requests."


class HintCancelled(HintEngineError):
    code = "hint_cancelled"
    default_message = "The session ended before the hint was ready."


_FALLBACK_HINTS: dict[type[HintEngineError], str] = {
    ProviderUnconfigured: "AI is not configured yet. Ask an admin to set up an AI provider, then try again.",
    ProviderUnauthorized: "AI provider authentication failed. Check the configured API key and try again.",
    ProviderRateLimited: "The AI provider is busy right now. Wait a few seconds and ask again.",
    HintCancelled: "The session ended before this hint was ready.",
    NoCredits: "You're out of credits. Top up to keep getting hints.",
}

GENERIC_FALLBACK_HINT = "Couldn't get a hint this time. Try again in a moment."


def fallback_message(exc: BaseException) -> str:
    """Deterministic user-facing text for a failed hint request."""
    for exc_type, message in _FALLBACK_HINTS.items():
        if isinstance(exc, exc_type):
            return message
    return GENERIC_FALLBACK_HINT
