"""
Diff package: git-based diff generation and rendering.
"""
from services.diff.generator import DiffGenerator, is_git_installed, parse_unified_diff
from services.diff.renderer import build_metadata, render_html, render_text

__all__ = [
    "DiffGenerator",
    "is_git_installed",
    "parse_unified_diff",
    "build_metadata",
    "render_html",
    "render_text",
]
