"""Dump readers, detail files, the joined package table and site output."""

from .knowledge_base import KnowledgeBase
from .output import SiteGenerator

__all__ = ["KnowledgeBase", "SiteGenerator"]
