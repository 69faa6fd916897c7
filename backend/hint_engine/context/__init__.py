from hint_engine.context.window import ContextWindowEntry, RollingContextWindow, is_question

__all__ = ["ContextWindowEntry", "RollingContextWindow", "is_question"]
