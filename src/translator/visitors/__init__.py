"""Visitor implementations for flow graph traversal."""

from .base import FlowNodeVisitor
from .draft_extractor import DraftExtractor, extract_drafts

__all__ = ["DraftExtractor", "FlowNodeVisitor", "extract_drafts"]
