from __future__ import annotations
"""Prompt templates on disk, with per-vibe tone notes layered over defaults."""

import logging
from pathlib import Path
from typing import ClassVar

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent / "templates"
DEFAULT_DIR = "default"


class PromptManager:
    """Read and cache prompt templates.

    Layout::

        prompts/templates/default/script_system.txt
        prompts/templates/default/script_user.txt
        prompts/templates/{vibe}/vibe_notes.txt

    A vibe directory only needs the files it overrides; anything missing is
    read from ``default``.
    """

    _cache: ClassVar[dict[tuple[str, str], str]] = {}

    @classmethod
    def _path_for(cls, template_name: str, vibe: str) -> Path | None:
        for directory in (vibe, DEFAULT_DIR):
            path = _TEMPLATES_DIR / directory / f"{template_name}.txt"
            if path.is_file():
                return path
        return None

    @classmethod
    def get_prompt(cls, template_name: str, style: str = DEFAULT_DIR) -> str:
        """Template text for ``style`` (a vibe), or "" when no file exists."""
        key = (style, template_name)
        if key not in cls._cache:
            path = cls._path_for(template_name, style)
            if path is None:
                logger.debug("No %s template for vibe %s", template_name, style)
                return ""
            cls._cache[key] = path.read_text(encoding="utf-8").strip()
        return cls._cache[key]

    @classmethod
    def render(cls, template_name: str, style: str = DEFAULT_DIR, **values: str) -> str:
        """Fetch a template and fill its ``{name}`` placeholders.

        Values are inserted as-is, so braces inside thread text are safe.
        """
        template = cls.get_prompt(template_name, style)
        return template.format(**values) if template else ""

    @classmethod
    def reload(cls) -> None:
        cls._cache.clear()
        logger.info("Prompt template cache cleared")

    @classmethod
    def vibes_with_notes(cls) -> list[str]:
        """Vibes that ship their own tone notes."""
        if not _TEMPLATES_DIR.is_dir():
            return []
        return sorted(
            d.name for d in _TEMPLATES_DIR.iterdir()
            if d.is_dir() and d.name != DEFAULT_DIR and (d / "vibe_notes.txt").is_file()
        )
