"""Tests for the prompt registry."""

import pytest

from remaimber.prompts.registry import clear_cache, get_prompt, list_prompts


class TestGetPrompt:
    """Tests for get_prompt."""

    def test_grading_prompts_exist(self):
        assert {"grading/theory", "grading/code", "grading/cli"} <= set(list_prompts())

    def test_substitutes_variables(self):
        prompt = get_prompt("grading/theory", rules="R", question="Q?", expected="E", answer="A")
        assert "Q?" in prompt
        assert "{question}" not in prompt

    def test_unknown_placeholders_left_alone(self):
        prompt = get_prompt("grading/theory", question="Q?")
        assert "{answer}" in prompt

    def test_json_example_untouched(self):
        prompt = get_prompt("grading/theory", rules="R", question="Q", expected="E", answer="A")
        assert '{"covered": [...], "missed": [...]}' in prompt

    def test_code_json_example_untouched(self):
        prompt = get_prompt("grading/code", rules="R", question="Q", expected="E", answer="A")
        assert '{"covered": ["logical element", ...], "missed": ["logical element", ...]}' in prompt

    def test_values_are_not_substituted_twice(self):
        prompt = get_prompt("grading/cli", rules="R", question="Q", expected="E", answer="echo {rules}")
        assert "echo {rules}" in prompt

    def test_missing_prompt(self):
        with pytest.raises(FileNotFoundError):
            get_prompt("grading/essay")

    def test_uncached_matches_cached(self):
        clear_cache()
        assert get_prompt("grading/cli", use_cache=False) == get_prompt("grading/cli")
