"""Editor package: paste tracking, edit inference, history and the editing session."""

from importlib import import_module
from typing import Any

from . import edit_inference, history, pasted_ranges

__all__ = ["edit_inference", "history", "pasted_ranges"]

_LAZY_MODULES = {"session", "editor_widget"}


def __getattr__(name: str) -> Any:
	if name in _LAZY_MODULES:
		module = import_module(f"{__name__}.{name}")
		globals()[name] = module
		return module
	raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
