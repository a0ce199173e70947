"""Render documents as downloadable files."""

import html
import re
from typing import Any, NamedTuple

EMPTY_CONTENT = "No content available"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")

_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>
      body {{ font-family: Arial, sans-serif; margin: 40px; }}
      h1 {{ color: #333; }}
      .meta {{ color: #666; font-size: 12px; margin-bottom: 20px; }}
      .content {{ line-height: 1.6; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <div class="meta">
      Created: {created}<br>
      Last Modified: {updated}<br>
      Status: {status}
    </div>
    <div class="content">
      {content}
    </div>
  </body>
</html>
"""


class ExportedFile(NamedTuple):
    content: str
    media_type: str
    filename: str


def _filename(title: str, extension: str) -> str:
    return f"{_UNSAFE_FILENAME_CHARS.sub('_', title)}.{extension}"


def _date(value: Any) -> str:
    return value.date().isoformat() if value is not None else ""


def _render_html(document: Any) -> str:
    # content is stored as rich-text HTML and embedded as is
    return _HTML_TEMPLATE.format(
        title=html.escape(document.title),
        created=_date(document.created_at),
        updated=_date(document.updated_at),
        status=html.escape(document.status or ""),
        content=document.content or EMPTY_CONTENT,
    )


def _render_txt(document: Any) -> str:
    return f"Title: {document.title}\n\n{document.content or EMPTY_CONTENT}"


def _render_md(document: Any) -> str:
    return f"# {document.title}\n\n{document.content or EMPTY_CONTENT}"


EXPORT_FORMATS = {
    "html": (_render_html, "text/html"),
    "txt": (_render_txt, "text/plain"),
    "md": (_render_md, "text/markdown"),
}


def export_document(document: Any, file_format: str) -> ExportedFile:
    """
    Render ``document`` in ``file_format`` (html, txt or md, case-insensitive).

    Raises:
        ValueError: the format is not supported
    """
    file_format = file_format.lower()
    if file_format not in EXPORT_FORMATS:
        supported = ", ".join(sorted(EXPORT_FORMATS))
        raise ValueError(f"Unsupported format. Supported formats: {supported}")

    render, media_type = EXPORT_FORMATS[file_format]
    return ExportedFile(
        content=render(document),
        media_type=media_type,
        filename=_filename(document.title, file_format),
    )
