"""Analyzers for unpacked packages and cloned repositories."""

from .crate_analyzer import CrateAnalyzer
from .repo_analyzer import RepoAnalyzer

__all__ = ["CrateAnalyzer", "RepoAnalyzer"]
