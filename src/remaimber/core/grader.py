"""Answer grading against the LLM oracle.

Responsibilities:
- Build a grading prompt for the bank type (theory / code / cli), with the
  bank's custom rubric replacing the default rules when present
- Call the oracle with a bounded retry policy (2 attempts in total)
- Extract and validate the ``{"covered": [...], "missed": [...]}`` object
- Derive the score from the covered/missed counts

The oracle's own ``score`` field, if any, is ignored.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import structlog

from remaimber.core.errors import GradeError
from remaimber.core.json_extract import extract_json_object, strip_thinking
from remaimber.core.models import BankType
from remaimber.llm.client import LLMClient, LLMError
from remaimber.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 2

UNABLE_TO_EVALUATE = "Unable to evaluate"

# =============================================================================
# PROMPT STRATEGIES
# =============================================================================

THEORY_RULES = """RULES:
- Same meaning with different wording = COVERED.
- Missing or incorrect concept = MISSED."""

CODE_RULES = """SEMANTIC GRADING RULES:
- Compare structure and logic, not exact variable names.
- The code must be syntactically valid and achieve the same result.
- If a key element is partially correct (right idea, small typo), mark it COVERED.
- If a key element is completely wrong or missing, mark it MISSED.
- Do NOT check for imports unless they are critical to the logic."""

CLI_RULES = """RULES:
- Correct command structure required.
- Flag order irrelevant.
- Missing required flags = MISSED."""

_NUMBERED_PREFIX = re.compile(r"^\d+[.)] ")


def _strip_numbered_prefix(text: str) -> str:
    """Drop a leading "1. " or "2) " list marker."""
    match = _NUMBERED_PREFIX.match(text)
    if match is None:
        return text
    return text[match.end() :].strip()


def split_key_points(text: str) -> str:
    """Normalize an expected answer into a numbered list of key points.

    Bullets (``-``, ``*``, ``•``, ``·``) and existing numbering are removed,
    blank lines skipped.

    Example:
        >>> print(split_key_points("- fast\\n2) cheap"))
        1. fast
        2. cheap
        <BLANKLINE>
    """
    points = []
    for line in text.strip().splitlines():
        point = line.strip().lstrip("•·").strip()
        if point.startswith("- ") or point.startswith("* "):
            point = point[2:].strip()
        point = _strip_numbered_prefix(point)
        if point:
            points.append(point)

    return "".join(f"{i}. {p}\n" for i, p in enumerate(points, start=1))


@dataclass(frozen=True)
class PromptStrategy:
    """How to build the grading prompt for one bank type."""

    template_key: str
    default_rules: str
    format_expected: Callable[[str], str] = lambda text: text

    def build(
        self,
        question: str,
        expected_answer: str,
        user_answer: str,
        custom_rules: str | None = None,
    ) -> str:
        rules = custom_rules if custom_rules and custom_rules.strip() else self.default_rules
        return get_prompt(
            self.template_key,
            rules=rules,
            question=question,
            expected=self.format_expected(expected_answer),
            answer=user_answer,
        )


# Closed set: every BankType must have an entry
PROMPT_STRATEGIES: dict[BankType, PromptStrategy] = {
    BankType.THEORY: PromptStrategy("grading/theory", THEORY_RULES, split_key_points),
    BankType.CODE: PromptStrategy("grading/code", CODE_RULES),
    BankType.CLI: PromptStrategy("grading/cli", CLI_RULES),
}


def build_prompt(
    bank_type: BankType,
    question: str,
    expected_answer: str,
    user_answer: str,
    custom_rules: str | None = None,
) -> str:
    """Build the grading prompt for a bank type."""
    return PROMPT_STRATEGIES[BankType(bank_type)].build(
        question, expected_answer, user_answer, custom_rules
    )


# =============================================================================
# RESULT CONTRACT
# =============================================================================


@dataclass
class GradeOutcome:
    """Normalized grading result."""

    score: int
    covered: list[str] = field(default_factory=list)
    missed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "covered": self.covered, "missed": self.missed}


def compute_score(covered: list[str], missed: list[str]) -> int:
    """floor(100 * covered / (covered + missed)); 0 when both are empty."""
    total = len(covered) + len(missed)
    if total == 0:
        return 0
    return (len(covered) * 100) // total


def _string_list(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{key}' items must be strings, got {type(item).__name__}")
    return list(value)


def parse_grade_payload(raw: str) -> GradeOutcome:
    """Turn raw oracle text into a GradeOutcome.

    Raises:
        GradeError: If no JSON object is found or it has the wrong shape
    """
    json_str = extract_json_object(strip_thinking(raw))
    if not json_str:
        raise GradeError("no JSON object found in LLM response")

    try:
        payload = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise GradeError("invalid JSON from LLM", e) from e

    if not isinstance(payload, dict):
        raise GradeError("LLM JSON is not an object")

    try:
        covered = _string_list(payload, "covered")
        missed = _string_list(payload, "missed")
    except ValueError as e:
        raise GradeError("unexpected JSON shape from LLM", e) from e

    if not covered and not missed:
        missed = [UNABLE_TO_EVALUATE]

    return GradeOutcome(score=compute_score(covered, missed), covered=covered, missed=missed)


# =============================================================================
# GRADERS
# =============================================================================


class Grader(Protocol):
    """Grades a user's answer against an expected answer.

    Implementations may call an LLM or return canned results (tests).
    Blocking: the orchestrator runs it in a worker thread.
    """

    def grade(
        self,
        question: str,
        expected_answer: str,
        user_answer: str,
        grading_prompt: str | None,
        bank_type: BankType,
    ) -> GradeOutcome: ...


class LLMGrader:
    """Grader backed by an OpenAI-compatible chat completions oracle."""

    def __init__(self, client: LLMClient, max_attempts: int = MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts

    def grade(
        self,
        question: str,
        expected_answer: str,
        user_answer: str,
        grading_prompt: str | None = None,
        bank_type: BankType = BankType.THEORY,
    ) -> GradeOutcome:
        """Grade one answer.

        Raises:
            GradeError: After max_attempts failed calls or unparseable replies
        """
        prompt = build_prompt(bank_type, question, expected_answer, user_answer, grading_prompt)

        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                raw = self.client.complete(prompt, temperature=0)
                outcome = parse_grade_payload(raw)
            except (LLMError, GradeError) as e:
                last_error = e
                logger.warning(
                    "grading_attempt_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                )
                continue

            logger.debug(
                "answer_graded",
                attempt=attempt,
                score=outcome.score,
                covered=len(outcome.covered),
                missed=len(outcome.missed),
            )
            return outcome

        raise GradeError(f"failed after {self.max_attempts} attempts", last_error)
