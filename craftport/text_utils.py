"""Utility helpers for slugs, file names and markdown text cleanup."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from urllib.parse import unquote, urlparse

SLUG_PATTERN = re.compile(r"[^\w]+")
APOSTROPHES_PATTERN = re.compile(r"['’ʼ`]")

# Characters that are unsafe in file names on common filesystems
FILE_NAME_UNSAFE_PATTERN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Inline markdown syntax, applied in order by clear_markdown_syntax()
MARKDOWN_IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]*)\]\([^)]*\)")
MARKDOWN_CODE_PATTERN = re.compile(r"`([^`]*)`")
MARKDOWN_EMPHASIS_PATTERN = re.compile(r"(\*\*|\*|~~)(\S(?:.*?\S)?)\1")
MARKDOWN_UNDERSCORE_PATTERN = re.compile(r"(?<!\w)(__|_)(\S(?:.*?\S)?)\1(?!\w)")
MARKDOWN_HTML_TAG_PATTERN = re.compile(r"</?[a-zA-Z][^>]*>")
MARKDOWN_ESCAPE_PATTERN = re.compile(r"\\([\\`*_{}\[\]()#+\-.!])")

# Invisible characters Craft leaves around blocks
INVISIBLE_CHARS_PATTERN = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
TRAILING_SPACE_ONLY_LINES = re.compile(r"^[ \t]+$", re.MULTILINE)
EXTRA_BLANK_LINES = re.compile(r"\n{3,}")


def slugify(value: str, fallback: str = "") -> str:
    """
    Generate a URL-safe slug.

    Letters outside ASCII (Cyrillic titles are common in Craft exports) are
    kept as-is (й stays й); accents on Latin letters are folded and
    everything else becomes a hyphen.
    """
    chars = []
    for ch in unicodedata.normalize("NFKD", value):
        if unicodedata.combining(ch) and chars and chars[-1].isascii():
            continue
        chars.append(ch)
    normalized = unicodedata.normalize("NFC", "".join(chars)).lower()
    normalized = APOSTROPHES_PATTERN.sub("", normalized)
    normalized = SLUG_PATTERN.sub("-", normalized).replace("_", "-")
    normalized = re.sub(r"-{2,}", "-", normalized).strip("-")
    return normalized or fallback


def clear_markdown_syntax(text: str) -> str:
    """Strip inline markdown (emphasis, links, code, tags) leaving plain text."""
    mod = MARKDOWN_IMAGE_PATTERN.sub(r"\1", text)
    mod = MARKDOWN_LINK_PATTERN.sub(r"\1", mod)
    mod = MARKDOWN_CODE_PATTERN.sub(r"\1", mod)
    mod = MARKDOWN_HTML_TAG_PATTERN.sub("", mod)
    # Nested emphasis like ***bold italic*** needs more than one pass
    previous = None
    while previous != mod:
        previous = mod
        mod = MARKDOWN_EMPHASIS_PATTERN.sub(r"\2", mod)
        mod = MARKDOWN_UNDERSCORE_PATTERN.sub(r"\2", mod)
    mod = MARKDOWN_ESCAPE_PATTERN.sub(r"\1", mod)
    return " ".join(mod.split())


def clear_file_name(name: str) -> str:
    """
    Make a file name safe for the filesystem.

    Percent-escapes are decoded, unsafe characters dropped and whitespace
    runs collapsed to a single hyphen.
    """
    mod = unquote(name)
    mod = FILE_NAME_UNSAFE_PATTERN.sub("", mod)
    mod = re.sub(r"\s+", "-", mod.strip())
    return mod.strip(".")


def url_file_name(url: str) -> str:
    """Return the sanitized last path segment of a URL ('' for bare hosts)."""
    path = urlparse(url).path if "://" in url else url.split("?", 1)[0].split("#", 1)[0]
    base = path.rstrip("/").rsplit("/", 1)[-1]
    return clear_file_name(base)


def clear_content(content: str) -> str:
    """
    Normalize whitespace noise in a markdown body.

    - CRLF line endings become LF
    - zero-width characters are removed
    - whitespace-only lines become empty
    - runs of blank lines collapse to one
    - leading/trailing blank space is trimmed, one final newline kept
    """
    mod = content.replace("\r\n", "\n")
    mod = INVISIBLE_CHARS_PATTERN.sub("", mod)
    mod = TRAILING_SPACE_ONLY_LINES.sub("", mod)
    mod = EXTRA_BLANK_LINES.sub("\n\n", mod)
    mod = mod.strip()
    return mod + "\n" if mod else ""


def md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()
