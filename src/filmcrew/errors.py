"""Exception hierarchy shared across filmcrew."""

from __future__ import annotations


class FilmcrewError(RuntimeError):
    """Base class for errors raised by filmcrew."""


class TaskStateError(FilmcrewError):
    """Raised when a task is asked to make a transition its status forbids."""


class UnknownActionError(FilmcrewError):
    """Raised by executors that have no handler for a task's agent/action."""


class ConfigError(FilmcrewError):
    """Raised when configuration files or agent definitions are invalid."""
