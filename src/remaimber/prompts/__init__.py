"""Prompt templates loaded from markdown files."""
