"""Shared typing aliases used across modules."""

from typing import Any, Callable, TypeAlias

MessageDict: TypeAlias = dict[str, Any]
Notifier: TypeAlias = Callable[[str], None]
