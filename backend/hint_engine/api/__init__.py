from hint_engine.api.commands import CommandDispatcher

__all__ = ["CommandDispatcher"]
