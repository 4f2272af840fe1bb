"""Tests for the prompt template manager."""

from threadflow.prompts import PromptManager


def test_vibe_notes_override_per_vibe():
    assert "Cinematic" in PromptManager.get_prompt("vibe_notes", style="cinematic")
    assert "Minimalist" in PromptManager.get_prompt("vibe_notes", style="minimalist")


def test_missing_vibe_falls_back_to_default():
    assert PromptManager.get_prompt("script_user", style="minimalist") == PromptManager.get_prompt("script_user")


def test_missing_template_is_empty():
    assert PromptManager.get_prompt("no_such_template", style="cinematic") == ""
    assert PromptManager.render("no_such_template", thread_content="x") == ""


def test_render_leaves_thread_braces_alone():
    rendered = PromptManager.render("script_user", thread_content='{"not": "a field"}')
    assert rendered.endswith('{"not": "a field"}')


def test_vibes_with_notes():
    assert PromptManager.vibes_with_notes() == ["cinematic", "fast-paced", "minimalist"]


def test_reload_clears_the_cache():
    PromptManager.get_prompt("script_system")
    PromptManager.reload()
    assert PromptManager._cache == {}
