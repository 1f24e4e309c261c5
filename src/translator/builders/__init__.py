"""Builders for sink actions."""

from .action_builder import ActionBuilder

__all__ = ["ActionBuilder"]
