#!/usr/bin/env python3
"""
markdown_entities.py - Metadata and media extraction from Craft markdown

Craft exports each document as plain markdown with an optional H1 title and
a block of "> Key: value" directive lines. This module:

1. Folds an ordered list of extraction rules over the raw text, each rule
   capturing one field and removing its line from the body
2. Folds bold caption lines into the media link above them
3. Lifts the first body line into the cover when it is an image
4. Finds image, PDF and video links in the body
5. Rewrites gallery blocks and isolated YouTube links into Hugo shortcodes

Nothing here touches the network or the output tree; see assets.py and
migrate.py for that.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from craftport.text_utils import clear_content, clear_markdown_syntax, slugify


# -----------------------------------------------------------------------------
# Data model
# -----------------------------------------------------------------------------

@dataclass
class Cover:
    image: str
    caption: Optional[str] = None


@dataclass
class Document:
    """One source file's parsed result."""

    slug: str
    content: str
    title: Optional[str] = None
    date: Optional[datetime] = None
    lang: Optional[str] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    series: Optional[List[str]] = None
    draft: bool = False
    show_toc: Optional[bool] = None
    toc_open: Optional[bool] = None
    original: Optional[str] = None
    social: Optional[str] = None
    cover: Optional[Cover] = None
    # Folder of the source file, used to pick up local assets
    source_dir: Optional[Path] = None


class AssetKind(Enum):
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"


@dataclass
class AssetEntry:
    """An occurrence of a media link inside a document body."""

    raw: str
    url: str
    caption: Optional[str] = None
    kind: AssetKind = AssetKind.IMAGE


@dataclass
class VideoFormats:
    """Which variants the video URL itself already represents."""

    mov: Optional[str] = None
    mp4: Optional[str] = None


@dataclass
class VideoEntry(AssetEntry):
    kind: AssetKind = AssetKind.VIDEO
    formats: VideoFormats = field(default_factory=VideoFormats)


# -----------------------------------------------------------------------------
# Patterns
# -----------------------------------------------------------------------------

# Shared tail of every media link: (url "optional title")
_LINK_TAIL = r'\s*("[^"\n]*")?\s*\)'

H1_TITLE_PATTERN = re.compile(r"\A# (.+?)\n")

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)\s]*)" + _LINK_TAIL)
PDF_PATTERN = re.compile(r"\[([^\]]*)\]\(([^)\s]*?\.pdf)" + _LINK_TAIL)
VIDEO_PATTERN = re.compile(r"\[([^\]]*)\]\(([^)\s]*?\.(mov|mp4))" + _LINK_TAIL, re.IGNORECASE)

MEDIA_WITH_CAPTION_PATTERN = re.compile(
    r"(!*)\[[^\]]*\]\(([^)\s]*)" + _LINK_TAIL + r"\n+\*\*(.+?)\*\*"
)

# A run of images between two lines of four or more dashes
GALLERY_BLOCK_PATTERN = re.compile(
    r"^-{4,}[ \t]*\n(?P<body>.*?)\n-{4,}[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

# A YouTube link alone on its line
YOUTUBE_LINK_PATTERN = re.compile(
    r"^\[(?P<title>[^\]\n]*)\]\("
    r"(?:https?://)?(?:www\.|m\.)?"
    r"(?:youtube\.com/watch\?v=|youtube\.com/shorts/|youtu\.be/)"
    r"(?P<id>[a-zA-Z0-9_-]{11})\)[ \t]*$",
    re.MULTILINE,
)

LANGUAGE_ALIASES = {
    "ua": "uk",
}

DATE_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M",
    "%B %d, %Y",
    "%B %d, %Y %H:%M",
    "%B %d, %Y %I:%M %p",
    "%b %d, %Y",
    "%b %d, %Y %H:%M",
    "%d %B %Y",
    "%d %b %Y",
)


def directive_pattern(key: str) -> re.Pattern:
    """Pattern for a '> Key: value' line; the trailing newline is required."""
    return re.compile(rf"> {key}: (.+?)\n")


# -----------------------------------------------------------------------------
# Field conversions
# -----------------------------------------------------------------------------

def parse_date(value: str) -> datetime:
    """
    Parse a Date directive value.

    Raises ValueError when nothing fits, which keeps the line in the body.
    Naive values are taken as UTC.
    """
    text = value.strip()
    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        raise ValueError(f"Unrecognized date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",")]


def is_true(value: str) -> bool:
    return value == "true"


def normalize_language(value: str) -> str:
    lang = value.strip().lower()
    return LANGUAGE_ALIASES.get(lang, lang)


def _verbatim(value: str) -> str:
    return value


def _strip_quotes(title: Optional[str]) -> Optional[str]:
    if not title:
        return None
    return re.sub(r'(^"|"$)', "", title)


# -----------------------------------------------------------------------------
# Extraction rules
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractionRule:
    """
    One single-shot extraction over the residual text.

    apply() returns (value, remaining_text). A conversion that raises
    ValueError leaves both the field and the text untouched.
    """

    field_name: str
    pattern: re.Pattern
    convert: Callable[[str], Any]

    def apply(self, text: str) -> Tuple[Optional[Any], str]:
        match = self.pattern.search(text)
        if not match:
            return None, text
        try:
            value = self.convert(match.group(1))
        except ValueError:
            return None, text
        return value, text[: match.start()] + text[match.end():]


# Order matters: each rule sees the text left by the ones before it
EXTRACTION_RULES: Tuple[ExtractionRule, ...] = (
    ExtractionRule("title", H1_TITLE_PATTERN, clear_markdown_syntax),
    ExtractionRule("title", directive_pattern("Title"), clear_markdown_syntax),
    ExtractionRule("date", directive_pattern("Date"), parse_date),
    ExtractionRule("categories", directive_pattern("Category"), split_list),
    ExtractionRule("tags", directive_pattern("Tags"), split_list),
    ExtractionRule("series", directive_pattern("Series"), split_list),
    ExtractionRule("lang", directive_pattern("Language"), normalize_language),
    ExtractionRule("slug", directive_pattern("Slug"), _verbatim),
    ExtractionRule("draft", directive_pattern("Draft"), is_true),
    ExtractionRule("original", directive_pattern("Original"), _verbatim),
    ExtractionRule("show_toc", directive_pattern("ShowToc"), is_true),
    ExtractionRule("toc_open", directive_pattern("TocOpen"), is_true),
    ExtractionRule("social", directive_pattern("Social"), _verbatim),
)


def apply_rules(text: str, rules=EXTRACTION_RULES) -> Tuple[dict, str]:
    """Fold rules left-to-right; later hits for the same field win."""
    values: dict = {}
    for rule in rules:
        value, text = rule.apply(text)
        if value is not None:
            values[rule.field_name] = value
    return values, text


def extract_document(raw_text: str, file_title: str) -> Optional[Document]:
    """
    Build a Document from the raw markdown of one exported file.

    Returns None only for empty input.
    """
    if not raw_text:
        return None

    text = raw_text.replace("\r\n", "\n")
    values, content = apply_rules(text)

    title = values.get("title")
    derived_slug = slugify(title or file_title) or slugify(file_title, fallback="post")
    slug = values.pop("slug", None) or derived_slug

    content = clear_content(content)
    content = fold_captions(content)
    cover, content = extract_cover(content)
    content = clear_content(content)

    return Document(
        slug=slug,
        content=content,
        cover=cover,
        draft=values.pop("draft", False),
        **values,
    )


def parse_markdown_file(file_path: Path) -> Optional[Document]:
    """Read one exported markdown file and extract its Document."""
    raw_text = file_path.read_text(encoding="utf-8")
    document = extract_document(raw_text, file_path.stem)
    if document is not None:
        document.source_dir = file_path.parent
    return document


# -----------------------------------------------------------------------------
# Captions and cover
# -----------------------------------------------------------------------------

def fold_captions(content: str) -> str:
    """
    Move a **Caption** line below a media link into the link itself, as
    both its alt text and its quoted title.
    """

    def _repl(match: re.Match) -> str:
        is_img = match.group(1).startswith("!")
        src = match.group(2)
        caption = match.group(4).replace('"', "")
        prefix = "!" if is_img else ""
        return f'{prefix}[{caption}]({src} "{caption}")'

    return MEDIA_WITH_CAPTION_PATTERN.sub(_repl, content)


def extract_cover(content: str) -> Tuple[Optional[Cover], str]:
    """
    Take the first line as the cover when it is a lone image link.

    Returns (cover_or_None, content_without_that_line).
    """
    lines = content.split("\n")
    match = IMAGE_PATTERN.fullmatch(lines[0].strip())
    if not match:
        return None, content
    cover = Cover(image=match.group(2), caption=_strip_quotes(match.group(3)))
    return cover, "\n".join(lines[1:])


# -----------------------------------------------------------------------------
# Media entities
# -----------------------------------------------------------------------------

def get_image_entries(md: str) -> List[AssetEntry]:
    items: List[AssetEntry] = []
    for match in IMAGE_PATTERN.finditer(md):
        alt, url = match.group(1), match.group(2)
        caption = _strip_quotes(match.group(3)) or alt
        items.append(AssetEntry(raw=match.group(0), url=url, caption=caption, kind=AssetKind.IMAGE))
    return items


def get_pdf_entries(md: str) -> List[AssetEntry]:
    items: List[AssetEntry] = []
    for match in PDF_PATTERN.finditer(md):
        alt, url = match.group(1), match.group(2)
        caption = _strip_quotes(match.group(3)) or alt
        items.append(AssetEntry(raw=match.group(0), url=url, caption=caption, kind=AssetKind.PDF))
    return items


def get_video_entries(md: str) -> List[VideoEntry]:
    items: List[VideoEntry] = []
    for match in VIDEO_PATTERN.finditer(md):
        alt, url = match.group(1), match.group(2)
        ext = match.group(3).lower()
        formats = VideoFormats(
            mov=url if ext == "mov" else None,
            mp4=url if ext == "mp4" else None,
        )
        caption = _strip_quotes(match.group(4)) or alt
        items.append(VideoEntry(raw=match.group(0), url=url, caption=caption, formats=formats))
    return items


def get_asset_entries(md: str) -> List[AssetEntry]:
    """Images, then PDFs, then videos; the scans may overlap."""
    return [*get_image_entries(md), *get_pdf_entries(md), *get_video_entries(md)]


# -----------------------------------------------------------------------------
# Shortcodes
# -----------------------------------------------------------------------------

def shortcode_attr(value: Optional[str]) -> str:
    """Make a value safe inside a double-quoted shortcode parameter."""
    return (value or "").replace('"', "'")


def shortcode(name: str, **params: Optional[str]) -> str:
    parts = [name]
    for key, value in params.items():
        if value is None:
            continue
        parts.append(f'{key}="{shortcode_attr(value)}"')
    return "{{< " + " ".join(parts) + " >}}"


def gallery_shortcode(images: List[AssetEntry]) -> str:
    lines = ["{{< gallery >}}"]
    for image in images:
        lines.append("  " + shortcode("gallery_item", src=image.url, caption=image.caption or ""))
    lines.append("{{< /gallery >}}")
    return "\n".join(lines)


def mod_gallery_blocks(content: str) -> str:
    """
    Replace each dash-delimited block of images with a gallery shortcode.
    Blocks without any image (plain horizontal rules) are left alone.
    """

    def _repl(match: re.Match) -> str:
        images = get_image_entries(match.group("body"))
        if not images:
            return match.group(0)
        return gallery_shortcode(images)

    return GALLERY_BLOCK_PATTERN.sub(_repl, content)


def mod_youtube_embeds(content: str) -> str:
    """Replace YouTube links that sit alone on a line with an embed shortcode."""

    def _repl(match: re.Match) -> str:
        return shortcode("youtube", id=match.group("id"), title=match.group("title"))

    return YOUTUBE_LINK_PATTERN.sub(_repl, content)
