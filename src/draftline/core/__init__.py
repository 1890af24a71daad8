"""Core domain types shared by the editor and services layers."""

from .ranges import PastedRange, TextRange, make_range

__all__ = ["PastedRange", "TextRange", "make_range"]
