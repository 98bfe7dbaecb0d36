#!/usr/bin/env python3
"""
migrate.py - Turn a folder of Craft markdown exports into Hugo page bundles

For each *.md file in the source folder (sorted, one at a time):

1. Parse directives, captions and cover (markdown_entities)
2. Resolve the cover and every image/PDF/video link to assets/<file>
   (downloads run on a small thread pool, one document at a time)
3. Rewrite YouTube links, gallery blocks and video links as shortcodes
4. Write <dist>/<slug>/index.md (or index.<lang>.md) with frontmatter

Output layout:
    <dist>/<slug>/index.md
    <dist>/<slug>/assets/<file_title>.<ext>

A document whose assets cannot be fetched or converted is reported as failed
and the run moves on to the next one.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import requests

from craftport.assets import AssetResolver
from craftport.config_utils import CraftportConfig
from craftport.errors import (
    CraftportError,
    missing_source_dir_error,
    no_source_files_error,
)
from craftport.front_matter import render_front_matter
from craftport.log_utils import fence, get_logger
from craftport.markdown_entities import (
    AssetEntry,
    Cover,
    Document,
    get_asset_entries,
    get_video_entries,
    mod_gallery_blocks,
    mod_youtube_embeds,
    parse_markdown_file,
    shortcode,
)
from craftport.path_utils import ensure_dir, list_files_in_folder, relative_posix
from craftport.transcode import FFmpegTranscoder, Transcoder, VideoTranscoder


ASSETS_FOLDER_NAME = "assets"


def index_file_name(lang: Optional[str]) -> str:
    """index.md, or index.<lang>.md for translated documents"""
    return f"index.{lang}.md" if lang else "index.md"


def replace_link_url(raw: str, url: str, new_url: str) -> str:
    """Swap the URL inside a markdown link, leaving alt text untouched."""
    head, sep, tail = raw.partition("](")
    if not sep:
        return raw.replace(url, new_url, 1)
    return head + sep + tail.replace(url, new_url, 1)


# -----------------------------------------------------------------------------
# PostBuilder (one document → one page bundle)
# -----------------------------------------------------------------------------

class PostBuilder:
    """
    Assemble the page bundle of one Document.

    Resolver and video transcoder are shared across documents so their
    caches and locks are too.
    """

    def __init__(
        self,
        dist_path: Path,
        resolver: AssetResolver,
        video_transcoder: VideoTranscoder,
        workers: int = 1,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.dist_path = dist_path
        self.resolver = resolver
        self.video_transcoder = video_transcoder
        self.workers = max(1, workers)
        self.logger = logger or get_logger("migrate")

    def build(self, document: Document) -> Path:
        """
        Write the page bundle for document and return the index file path.

        Raises AssetDownloadError / TranscodeError when an asset fails; the
        index file is not written in that case.
        """
        post_folder = ensure_dir(self.dist_path / document.slug)
        assets_folder = ensure_dir(post_folder / ASSETS_FOLDER_NAME)

        cover = document.cover
        if cover:
            resolved = self.resolver.resolve(
                cover.image, cover.caption or "", assets_folder, document.source_dir
            )
            cover = Cover(image=f"{ASSETS_FOLDER_NAME}/{resolved.file_name}", caption=cover.caption)
            self.logger.debug("Cover: %s", cover.image)

        content = self.download_post_assets(document.content, assets_folder, document.source_dir)
        content = mod_youtube_embeds(content)
        content = mod_gallery_blocks(content)
        content = self.mod_video_entries(content, post_folder)

        front_matter = render_front_matter(dataclasses.replace(document, cover=cover))
        index_path = post_folder / index_file_name(document.lang)
        index_path.write_text(f"{front_matter}\n\n{content}", encoding="utf-8")
        self.logger.info("Wrote %s", relative_posix(index_path, self.dist_path))
        return index_path

    def download_post_assets(
        self,
        content: str,
        assets_folder: Path,
        source_dir: Optional[Path] = None,
    ) -> str:
        """Resolve every media link in content and point it at assets/."""
        entries = get_asset_entries(content)
        if not entries:
            return content

        # One resolve per (url, caption); duplicates share the result
        unique: Dict[Tuple[str, str], AssetEntry] = {}
        for entry in entries:
            unique.setdefault((entry.url, entry.caption or ""), entry)
        keys = list(unique)

        self.logger.debug("Resolving %d asset(s) with %d worker(s)", len(keys), self.workers)

        def _resolve(key: Tuple[str, str]) -> str:
            url, caption = key
            return self.resolver.resolve(url, caption, assets_folder, source_dir).file_name

        if self.workers == 1 or len(keys) == 1:
            names = [_resolve(key) for key in keys]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                names = list(executor.map(_resolve, keys))
        resolved = dict(zip(keys, names))

        for entry in entries:
            if entry.raw not in content:
                # Already rewritten as part of an overlapping match
                continue
            file_name = resolved[(entry.url, entry.caption or "")]
            new_raw = replace_link_url(entry.raw, entry.url, f"{ASSETS_FOLDER_NAME}/{file_name}")
            content = content.replace(entry.raw, new_raw)
        return content

    def mod_video_entries(self, content: str, post_folder: Path) -> str:
        """Replace each local video link with a video shortcode (mov, mp4, poster)."""
        for entry in get_video_entries(content):
            if not entry.url.startswith(f"{ASSETS_FOLDER_NAME}/"):
                self.logger.warning("Video not in assets, left as a link: %s", entry.url)
                continue

            variants = self.video_transcoder.ensure_variants(
                post_folder / entry.url,
                has_mov=bool(entry.formats.mov),
                has_mp4=bool(entry.formats.mp4),
            )
            code = shortcode(
                "video",
                mov=relative_posix(variants.mov, post_folder),
                mp4=relative_posix(variants.mp4, post_folder),
                poster=relative_posix(variants.poster, post_folder),
                caption=entry.caption or None,
            )
            # An image-style link to a video drops its "!" too
            content = content.replace("!" + entry.raw, code).replace(entry.raw, code)
        return content


# -----------------------------------------------------------------------------
# Batch run
# -----------------------------------------------------------------------------

@dataclass
class MigrationReport:
    processed: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (
            f"{len(self.processed)} migrated, "
            f"{len(self.skipped)} skipped, "
            f"{len(self.failed)} failed"
        )


def unique_slug(slug: str, used: Set[str]) -> str:
    """slug, or slug-2, slug-3, ... when taken earlier in the same run"""
    candidate = slug
    n = 2
    while candidate in used:
        candidate = f"{slug}-{n}"
        n += 1
    used.add(candidate)
    return candidate


def run_migration(
    config: CraftportConfig,
    transcoder: Optional[Transcoder] = None,
    session: Optional[requests.Session] = None,
    logger: Optional[logging.Logger] = None,
) -> MigrationReport:
    """
    Migrate every *.md file in config.src_path into config.dist_path.

    Raises SourceNotFoundError / NoSourceFilesError before touching anything.
    Per-document failures are collected in the returned report.
    """
    logger = logger or get_logger("migrate")

    src_path = config.src_path
    if not src_path.is_dir():
        raise missing_source_dir_error(src_path)

    files = list_files_in_folder(src_path, ["md"])
    if not files:
        raise no_source_files_error(src_path)

    logger.info("Source: %s", src_path)
    logger.info("Destination: %s", config.dist_path)
    logger.info("Found %d file(s) to import", len(files))

    ensure_dir(config.dist_path)
    ensure_dir(config.cache_path)
    ensure_dir(config.cache_posters_path)

    transcoder = transcoder or FFmpegTranscoder(timeout=config.transcode_timeout, logger=logger)
    resolver = AssetResolver(
        config.cache_path,
        transcoder,
        session=session,
        timeout=config.http_timeout,
        logger=logger,
    )
    video_transcoder = VideoTranscoder(
        config.cache_path,
        config.cache_posters_path,
        transcoder,
        logger=logger,
    )
    builder = PostBuilder(
        config.dist_path,
        resolver,
        video_transcoder,
        workers=config.workers,
        logger=logger,
    )

    report = MigrationReport()
    used_slugs: Set[str] = set()

    for file_path in files:
        fence(f"START: {file_path.name}", logger)
        try:
            document = parse_markdown_file(file_path)
            if document is None:
                logger.error("Empty file, skipping: %s", file_path.name)
                report.skipped.append(file_path)
                continue

            slug = unique_slug(document.slug, used_slugs)
            if slug != document.slug:
                logger.warning("Slug %r already used in this run, writing to %r", document.slug, slug)
                document.slug = slug

            report.processed.append(builder.build(document))
        except CraftportError as e:
            logger.error("Failed to migrate %s: %s", file_path.name, e.message)
            logger.debug(str(e))
            report.failed.append((file_path, e.message))
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to migrate %s: %s", file_path.name, e)
            report.failed.append((file_path, str(e)))

    logger.info("Migration complete: %s", report.summary())
    return report
