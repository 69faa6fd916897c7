from hint_engine.prompts.builder import PromptBundle, build_prompt
from hint_engine.prompts.modes import MODES, ModeConfig, resolve_mode

__all__ = ["MODES", "ModeConfig", "PromptBundle", "build_prompt", "resolve_mode"]
