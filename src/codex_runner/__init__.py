"""Codex Runner - run Codex CLI prompts as supervised, streamable tasks."""

__version__ = "0.1.0"
