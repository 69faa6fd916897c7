from hint_engine.validation.validator import BANNED_PHRASES, ValidatedResponse, validate

__all__ = ["BANNED_PHRASES", "ValidatedResponse", "validate"]
