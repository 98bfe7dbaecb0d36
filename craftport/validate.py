#!/usr/bin/env python3
"""
validate.py - Check a migrated content tree for broken output

Usage:
    craftport check [--dist content]

Checks, for every <dist>/<slug>/index*.md:
- Frontmatter parses and has a draft flag
- The cover image exists inside the page bundle
- assets/... links in the body point at existing files
- Shortcode src/mov/mp4/poster paths point at existing files
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import frontmatter
import yaml

from craftport.icons import ERROR, SUCCESS


ASSET_LINK_PATTERN = re.compile(r"\]\((assets/[^)\s\"]+)")
SHORTCODE_PATH_PATTERN = re.compile(r'\b(?:src|mov|mp4|poster)="([^"]+)"')


@dataclass
class ValidationIssue:
    """A single problem in the output tree"""
    path: Path
    message: str
    suggestion: Optional[str] = None

    def __str__(self):
        msg = f"  {ERROR} {self.message}"
        if self.suggestion:
            msg += f"\n    → {self.suggestion}"
        return msg


@dataclass
class ValidationResult:
    """Results from validating a content tree"""
    issues: List[ValidationIssue] = field(default_factory=list)
    files_checked: int = 0

    @property
    def is_valid(self) -> bool:
        return len(self.issues) == 0

    def add(self, path: Path, message: str, suggestion: Optional[str] = None):
        self.issues.append(ValidationIssue(path=path, message=message, suggestion=suggestion))

    def summary(self) -> str:
        n = len(self.issues)
        if n == 0:
            return f"{SUCCESS} All {self.files_checked} files valid!"
        return f"Found {n} issue{'s' if n != 1 else ''} in {self.files_checked} files checked."


def _is_local(ref: str) -> bool:
    return "://" not in ref and not ref.startswith("/")


def validate_index_file(index_path: Path, result: ValidationResult) -> None:
    """Validate one index*.md against its page bundle folder"""
    post_folder = index_path.parent
    try:
        post = frontmatter.load(index_path)
    except yaml.YAMLError as e:
        result.add(
            index_path,
            f"Invalid YAML frontmatter: {e}",
            "Re-run craftport migrate for this document",
        )
        return
    except UnicodeDecodeError as e:
        result.add(index_path, f"Failed to parse: {e}")
        return

    meta = dict(post.metadata)
    if "draft" not in meta:
        result.add(index_path, "Missing 'draft' in frontmatter")

    cover = meta.get("cover")
    if isinstance(cover, dict) and cover.get("image"):
        image = str(cover["image"])
        if _is_local(image) and not (post_folder / image).is_file():
            result.add(index_path, f"Cover image not found: {image}")

    seen = set()
    refs = ASSET_LINK_PATTERN.findall(post.content) + SHORTCODE_PATH_PATTERN.findall(post.content)
    for ref in refs:
        if ref in seen or not _is_local(ref):
            continue
        seen.add(ref)
        if not (post_folder / ref).is_file():
            result.add(
                index_path,
                f"Referenced file not found: {ref}",
                "Re-run craftport migrate; cached assets are copied back",
            )


def validate_content_tree(dist_path: Path) -> ValidationResult:
    """Main entry point for validation"""
    result = ValidationResult()
    if not dist_path.is_dir():
        result.add(dist_path, "Content folder not found")
        return result

    for post_folder in sorted(p for p in dist_path.iterdir() if p.is_dir()):
        index_files = sorted(post_folder.glob("index*.md"))
        if not index_files:
            result.add(post_folder, "Missing index.md")
            continue
        for index_path in index_files:
            validate_index_file(index_path, result)
            result.files_checked += 1

    return result
