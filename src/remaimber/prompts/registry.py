"""Prompt Registry - Load prompts from markdown files.

Grading prompts live next to this module as ``grading/<bank_type>.md`` and
use ``{variable}`` placeholders. Only ``{word}`` placeholders are replaced,
so literal JSON braces in a template are left alone.

Usage:
    from remaimber.prompts.registry import get_prompt

    prompt = get_prompt("grading/theory", question="What is a goroutine?")
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

PROMPTS_DIR = Path(__file__).parent

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _get_prompt_uncached(key: str) -> str:
    """Load raw prompt from file without caching.

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    file_path = PROMPTS_DIR / f"{key}.md"
    if not file_path.exists():
        raise FileNotFoundError(f"Prompt not found: {key} (looked at {file_path})")

    logger.debug("prompt_loaded", key=key)
    return file_path.read_text(encoding="utf-8")


@lru_cache(maxsize=16)
def _get_cached_prompt(key: str) -> str:
    return _get_prompt_uncached(key)


def get_prompt(key: str, use_cache: bool = True, **variables: str) -> str:
    """Load prompt from file and substitute variables.

    Args:
        key: Path-like key, e.g., "grading/code"
        use_cache: Whether to use cached version (default True)
        **variables: Variables to substitute, e.g., question="..."

    Returns:
        Prompt string with variables substituted

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    content = _get_cached_prompt(key) if use_cache else _get_prompt_uncached(key)

    # Single pass so substituted values containing {placeholders} stay literal
    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return _PLACEHOLDER.sub(_replace, content)


def list_prompts() -> list[str]:
    """List all available prompt keys, sorted."""
    prompts = []
    for path in PROMPTS_DIR.rglob("*.md"):
        key = path.relative_to(PROMPTS_DIR).with_suffix("").as_posix()
        prompts.append(key)
    return sorted(prompts)


def clear_cache() -> None:
    """Clear the prompt cache."""
    _get_cached_prompt.cache_clear()
