"""
Text and HTML rendering of a structured diff with its metadata header.
"""
import html
from datetime import datetime
from typing import List

from core import constants
from core.utils import format_duration, format_rfc1123
from models.diff import Diff, DiffMetadata
from models.fetch import FetchResult
from models.target import Target


def build_metadata(target: Target, result: FetchResult, last_fetch: datetime) -> DiffMetadata:
    """Collects the header information shown above a rendered diff."""
    return DiffMetadata(
        name=target.name,
        url=target.url,
        description=target.description,
        request_duration=result.duration,
        status_code=result.status_code,
        body_length=len(result.body),
        last_fetch=last_fetch,
    )


def metadata_text(meta: DiffMetadata) -> str:
    lines = [f"Name: {meta.name}", f"URL: {meta.url}"]
    if meta.description:
        lines.append(f"Description: {meta.description}")
    lines.extend(
        [
            f"Request Duration: {format_duration(meta.request_duration)}",
            f"Status: {meta.status_code}",
            f"Bodylen: {meta.body_length}",
            f"Last Fetch: {format_rfc1123(meta.last_fetch)}",
        ]
    )
    return "\n".join(lines)


def render_text(diff: Diff, meta: DiffMetadata) -> str:
    """Metadata block, a blank line, then every diff line followed by a newline."""
    body = "".join(f"{line.content}\n" for line in diff.lines)
    return f"{metadata_text(meta)}\n{body}"


def render_html(diff: Diff, meta: DiffMetadata) -> str:
    """
    Renders a self-contained HTML document.

    All content is escaped; each line becomes a
    <div class="diff-line diff-<mode>"> element.
    """
    header = "<br>".join(html.escape(line) for line in metadata_text(meta).split("\n"))

    css: List[str] = [
        "body { font-family: sans-serif; }",
        ".diff { font-family: monospace; white-space: pre-wrap; }",
    ]
    for mode, style in constants.DIFF_LINE_STYLES.items():
        css.append(f".diff-{mode} {{ {style} }}")

    rows = [
        f'<div class="diff-line diff-{line.mode.value}">{html.escape(line.content)}</div>'
        for line in diff.lines
    ]

    css_block = "\n".join(css)
    rows_block = "\n".join(rows)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(meta.name)}</title>\n"
        f"<style>\n{css_block}\n</style>\n"
        "</head>\n"
        "<body>\n"
        f'<p class="metadata">{header}</p>\n'
        f'<div class="diff">\n{rows_block}\n</div>\n'
        "</body>\n"
        "</html>\n"
    )
