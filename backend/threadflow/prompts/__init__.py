"""File-based prompt templates."""

from threadflow.prompts.manager import PromptManager

__all__ = ["PromptManager"]
