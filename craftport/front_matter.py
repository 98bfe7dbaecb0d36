"""
front_matter.py - Render Hugo frontmatter for a migrated document

Example output:

    ---
    title: "День перший | Кіліманджаро"
    date: 2021-07-15T10:21:00.000Z
    categories:
      - travel
    series:
      - "Kilimanjaro"
    cover:
      image: "assets/summit-1a2b.jpg"
      caption: "Uhuru Peak"
      relative: true
    ShowToc: true
    draft: false
    ---
"""

from datetime import datetime, timezone
from typing import List

import yaml

from craftport.markdown_entities import Document


def yaml_quote(value: str) -> str:
    """Double-quoted YAML scalar."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def yaml_plain(value: str) -> str:
    """
    Emit a plain scalar when YAML would read it back as the same string,
    otherwise fall back to a quoted one (e.g. 'yes', '2021', 'a: b').
    """
    try:
        if value and yaml.safe_load(value) == value:
            return value
    except yaml.YAMLError:
        pass
    return yaml_quote(value)


def format_date(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def render_front_matter(data: Document) -> str:
    """
    Build the frontmatter block as a string.

    Field order is fixed. Missing optional fields are left out; draft is
    always written.
    """
    lines: List[str] = ["---"]
    if data.title:
        lines.append(f"title: {yaml_quote(data.title)}")
    if data.date:
        lines.append(f"date: {format_date(data.date)}")
    if data.categories:
        lines.append("categories:")
        for category in data.categories:
            lines.append(f"  - {yaml_plain(category.lower())}")
    if data.tags:
        lines.append("tags:")
        for tag in data.tags:
            lines.append(f"  - {yaml_plain(tag.lower())}")
    if data.series:
        lines.append("series:")
        for item in data.series:
            lines.append(f"  - {yaml_quote(item)}")
    if data.cover:
        lines.append("cover:")
        lines.append(f"  image: {yaml_quote(data.cover.image)}")
        if data.cover.caption:
            lines.append(f"  caption: {yaml_quote(data.cover.caption)}")
        lines.append("  relative: true")
    if data.show_toc is not None:
        lines.append(f"ShowToc: {_format_bool(data.show_toc)}")
    if data.toc_open is not None:
        lines.append(f"TocOpen: {_format_bool(data.toc_open)}")
    lines.append(f"draft: {_format_bool(data.draft)}")
    lines.append("---")
    return "\n".join(lines)
