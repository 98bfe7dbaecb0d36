#!/usr/bin/env python3
"""
assets.py - Resolve remote media URLs to stable local asset files

Given a URL and an optional title, AssetResolver returns a file name inside
the post's assets/ folder. Lookup order:

1. assets/ already holds <file_title>.<ext>  → reuse it
2. the cache holds <md5(url)>[.<ext>]         → copy it into assets/
3. otherwise download into the cache, normalize TIFF-like images to JPEG,
   then copy into assets/

The cache is keyed by the URL hash, so a URL is downloaded once no matter how
many documents reference it. Entries are never overwritten or evicted.
"""

from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union
from urllib.parse import unquote

import requests

from craftport.errors import asset_download_error
from craftport.log_utils import get_logger
from craftport.path_utils import ensure_dir, file_ext, list_files_in_folder
from craftport.text_utils import clear_file_name, md5, slugify, url_file_name
from craftport.transcode import Transcoder


# Default timeouts for HTTP requests (connect, read)
DEFAULT_TIMEOUT = (10, 60)

DOWNLOAD_CHUNK_SIZE = 8192

# MIME subtypes that need a different file extension
CONTENT_TYPE_EXTENSIONS = {
    "jpeg": "jpg",
    "quicktime": "mov",
}

# Downloaded formats normalized to JPEG
CONVERT_TO_JPG_EXTENSIONS = {"tiff", "tif", "octet-stream"}

PARTIAL_SUFFIX = ".part"


@dataclass
class ResolvedAsset:
    file_name: str


def content_type_to_ext(content_type: Optional[str]) -> Optional[str]:
    """
    Map a Content-Type header to a file extension.

    'image/jpeg' → 'jpg', 'video/quicktime' → 'mov', otherwise the subtype.
    """
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime:
        return None
    subtype = mime.rsplit("/", 1)[-1]
    return CONTENT_TYPE_EXTENSIONS.get(subtype, subtype)


def is_remote_url(url: str) -> bool:
    lower = url.lower()
    return lower.startswith("http://") or lower.startswith("https://")


def url_to_file_title(url: str, title: Optional[str] = None) -> str:
    """
    Stable asset file stem for a URL, like 'some-photo-1a2b'.

    The title (slugified, without a trailing copy of the URL's extension)
    wins over the URL's own file name. The 4-char URL hash suffix keeps
    different sources with similar titles apart.
    """
    url_hash = md5(url)[:4]
    url_name = url_file_name(url)  # some-photo.jpeg
    url_ext = Path(url_name).suffix.lstrip(".").lower()  # jpeg or ''

    if title:
        mod = slugify(title)
        # Remove extension from title, like "IMG_1549.JPG"
        if url_ext and mod.endswith(url_ext):
            mod = mod[: -len(url_ext)].rstrip("-.")
        mod = clear_file_name(mod)
        if mod:
            return f"{mod}-{url_hash}"

    url_title = Path(url_name).stem or "asset"
    return f"{url_title}-{url_hash}"


def _split_name(path: Path) -> Tuple[str, str]:
    """('name', 'ext') for 'name.ext', ('name', '') for bare names."""
    return path.stem, file_ext(path)


class AssetResolver:
    """
    Turn media URLs into local asset files, backed by a flat download cache.

    Cache population is serialized per URL, so one resolver can be shared by
    a worker pool.
    """

    def __init__(
        self,
        cache_path: Path,
        transcoder: Transcoder,
        session: Optional[requests.Session] = None,
        timeout: Union[float, Tuple[float, float]] = DEFAULT_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cache_path = cache_path
        self.transcoder = transcoder
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or get_logger("assets")

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def resolve(
        self,
        url: str,
        title: Optional[str],
        assets_folder: Path,
        source_dir: Optional[Path] = None,
    ) -> ResolvedAsset:
        """
        Return the asset file name for url inside assets_folder.

        Raises AssetDownloadError when a fresh download fails.
        """
        url_hash = md5(url)
        file_title = url_to_file_title(url, title)

        with self._lock_for(url_hash):
            cached = self.find_cached(url_hash)
            prefer = [file_ext(cached)] if cached else []
            prefer.append(file_ext(Path(url_file_name(url))))

            existing = self.find_asset(assets_folder, file_title, prefer)
            if existing:
                self.logger.debug("File exists already: %s", existing.name)
                return ResolvedAsset(file_name=existing.name)

            if source_dir is not None and not is_remote_url(url):
                local = self._copy_local_asset(url, file_title, assets_folder, source_dir)
                if local:
                    return local

            if cached is None:
                self.logger.info("Downloading asset: %s", url)
                cached = self.download(url, url_hash)
            else:
                self.logger.debug("File found at the cache: %s", cached.name)

            ext = file_ext(cached)
            file_name = f"{file_title}.{ext}" if ext else file_title
            shutil.copyfile(cached, ensure_dir(assets_folder) / file_name)
            return ResolvedAsset(file_name=file_name)

    def find_asset(
        self,
        assets_folder: Path,
        file_title: str,
        prefer: Sequence[str] = (),
    ) -> Optional[Path]:
        """
        Existing asset named <file_title>[.<ext>].

        When several variants share the stem (IMG-1a2b.mp4 as downloaded and
        the IMG-1a2b.mov made from it) the first extension in prefer wins.
        resolve() lists the cached download's extension before the URL's.
        """
        matches = [
            path for path in list_files_in_folder(assets_folder)
            if _split_name(path)[0] == file_title or path.name == file_title
        ]
        if not matches:
            return None
        for ext in prefer:
            for path in matches:
                if ext and file_ext(path).lower() == ext.lower():
                    return path
        return matches[0]

    def find_cached(self, url_hash: str) -> Optional[Path]:
        """Cache entry named exactly <hash> or <hash>.<ext>; partial files never match."""
        for path in list_files_in_folder(self.cache_path):
            if path.name.endswith(PARTIAL_SUFFIX):
                continue
            if path.name == url_hash or path.stem == url_hash:
                return path
        return None

    def download(self, url: str, url_hash: str) -> Path:
        """
        Download url into the cache as <hash>.<ext>, converting TIFF-like
        payloads to JPEG. Returns the final cache path.
        """
        ensure_dir(self.cache_path)
        cache_file, ext = self._download_to_cache(url, url_hash)

        if ext and ext in CONVERT_TO_JPG_EXTENSIONS:
            converted = self.cache_path / f"{url_hash}.jpg"
            self.logger.info("Converting %s asset to jpg: %s", ext, url)
            try:
                self.transcoder.convert_image(cache_file, converted)
            finally:
                cache_file.unlink(missing_ok=True)
            cache_file = converted

        return cache_file

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def _download_to_cache(self, url: str, url_hash: str) -> Tuple[Path, Optional[str]]:
        partial: Optional[Path] = None
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                ext = content_type_to_ext(response.headers.get("Content-Type"))
                file_name = f"{url_hash}.{ext}" if ext else url_hash
                cache_file = self.cache_path / file_name
                partial = self.cache_path / f"{file_name}{PARTIAL_SUFFIX}"

                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)

            partial.replace(cache_file)
            return cache_file, ext
        except (requests.RequestException, OSError) as e:
            if partial is not None:
                partial.unlink(missing_ok=True)
            raise asset_download_error(url, self.cache_path, cause=e) from e

    def _copy_local_asset(
        self,
        url: str,
        file_title: str,
        assets_folder: Path,
        source_dir: Path,
    ) -> Optional[ResolvedAsset]:
        """Copy an asset that ships next to the exported markdown file."""
        local_path = (source_dir / unquote(url)).resolve()
        try:
            local_path.relative_to(source_dir.resolve())
        except ValueError:
            self.logger.warning("Ignoring local asset outside the source folder: %s", url)
            return None
        if not local_path.is_file():
            return None

        ext = file_ext(local_path)
        file_name = f"{file_title}.{ext}" if ext else file_title
        self.logger.debug("Copying local asset: %s", local_path.name)
        shutil.copyfile(local_path, ensure_dir(assets_folder) / file_name)
        return ResolvedAsset(file_name=file_name)
