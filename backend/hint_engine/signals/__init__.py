from hint_engine.signals.intent import Intent, IntentResult, classify, prompt_modifier
from hint_engine.signals.language import LanguageSignals, detect_from_text, resolve

__all__ = [
    "Intent",
    "IntentResult",
    "LanguageSignals",
    "classify",
    "detect_from_text",
    "prompt_modifier",
    "resolve",
]
