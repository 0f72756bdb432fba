"""Phase prompt templates and loader exports."""

from .loader import PromptLoader
from .models import PhasePrompt
from .templates import DEFAULT_PHASE_PROMPTS, PromptVariables, build_prompt, resolve_template

__all__ = [
    "DEFAULT_PHASE_PROMPTS",
    "PhasePrompt",
    "PromptLoader",
    "PromptVariables",
    "build_prompt",
    "resolve_template",
]
