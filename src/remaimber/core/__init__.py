"""Grading core: session building, grading orchestration and mastery."""
