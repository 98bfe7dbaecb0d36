#!/usr/bin/env python3
"""
transcode.py - Image/video normalization with a content-hash cache

Two layers:

- Transcoder: the capability that actually converts files. FFmpegTranscoder
  uses Pillow for images and the ffmpeg binary for video. Tests swap in a
  fake that just writes files.
- VideoTranscoder: the cache-and-reuse decision tree around it. For every
  video asset it makes sure a MOV, an MP4 and a poster JPEG exist next to the
  original, converting only when neither the post folder nor the cache has
  the result yet.

Cache layout (flat, append-only):
    <cache>/<sha256>.mov
    <cache>/<sha256>.mp4
    <cache>/posters/<sha256>.jpg
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from PIL import Image

from craftport.errors import transcode_error
from craftport.log_utils import get_logger
from craftport.path_utils import ensure_dir, file_ext


DEFAULT_TRANSCODE_TIMEOUT = 600.0

# Offset of the frame used as video poster
POSTER_OFFSET = "00:00:01"


# =============================================================================
# Hashing
# =============================================================================

def get_file_hash(file_path: Path) -> str:
    """SHA-256 of file contents."""
    hasher = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            hasher.update(chunk)
    return hasher.hexdigest()


def _partial_path(output_path: Path) -> Path:
    """Temp name that keeps the real extension so ffmpeg picks the format."""
    return output_path.with_name(f"{output_path.stem}.part{output_path.suffix}")


# =============================================================================
# Transcoder capability
# =============================================================================

class Transcoder:
    """Converts files; implementations must write output_path or raise."""

    def convert_image(self, input_path: Path, output_path: Path) -> None:
        raise NotImplementedError

    def transcode_video(self, input_path: Path, output_path: Path) -> None:
        raise NotImplementedError

    def extract_poster_frame(self, input_path: Path, output_path: Path) -> None:
        raise NotImplementedError


class FFmpegTranscoder(Transcoder):
    """Pillow for still images, ffmpeg for video."""

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        timeout: float = DEFAULT_TRANSCODE_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.ffmpeg_bin = ffmpeg_bin
        self.timeout = timeout
        self.logger = logger or get_logger("transcode")

    def convert_image(self, input_path: Path, output_path: Path) -> None:
        tmp_path = _partial_path(output_path)
        try:
            with Image.open(input_path) as img:
                img.convert("RGB").save(tmp_path, "JPEG", quality=90)
            tmp_path.replace(output_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise transcode_error("convert image", input_path, output_path, cause=e) from e

    def transcode_video(self, input_path: Path, output_path: Path) -> None:
        # Stream copy: MOV from phones is already H.264/AAC, only the
        # container changes
        self._run_ffmpeg(
            "transcode video",
            ["-i", str(input_path), "-c", "copy", "-movflags", "+faststart"],
            input_path,
            output_path,
        )

    def extract_poster_frame(self, input_path: Path, output_path: Path) -> None:
        self._run_ffmpeg(
            "extract video frame",
            ["-ss", POSTER_OFFSET, "-i", str(input_path), "-frames:v", "1"],
            input_path,
            output_path,
        )

    def _run_ffmpeg(self, operation: str, args: List[str], input_path: Path, output_path: Path) -> None:
        tmp_path = _partial_path(output_path)
        cmd = [self.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y", *args, str(tmp_path)]
        self.logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            tmp_path.unlink(missing_ok=True)
            raise transcode_error(operation, input_path, output_path, cause=e) from e

        if result.returncode != 0:
            tmp_path.unlink(missing_ok=True)
            raise transcode_error(operation, input_path, output_path, details=result.stderr)

        tmp_path.replace(output_path)


# =============================================================================
# Video variants
# =============================================================================

@dataclass
class VideoVariants:
    mov: Path
    mp4: Path
    poster: Path


class VideoTranscoder:
    """
    Ensure MOV/MP4/poster variants exist beside a video asset.

    Every variant is looked up beside the source first, then in the cache by
    content hash; the transcoder runs only on a full miss. The result always
    ends up both in the cache and beside the source.
    """

    def __init__(
        self,
        cache_path: Path,
        posters_path: Path,
        transcoder: Transcoder,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cache_path = cache_path
        self.posters_path = posters_path
        self.transcoder = transcoder
        self.logger = logger or get_logger("transcode")

    def ensure_variants(
        self,
        input_path: Path,
        has_mov: bool = False,
        has_mp4: bool = False,
    ) -> VideoVariants:
        """Return paths of the MOV, MP4 and poster for one video asset."""
        mov = input_path if has_mov else self.convert_video_asset(input_path, "mov")
        mp4 = input_path if has_mp4 else self.convert_video_asset(input_path, "mp4")
        poster = self.get_video_poster(input_path)
        return VideoVariants(mov=mov, mp4=mp4, poster=poster)

    def convert_video_asset(self, input_path: Path, fmt: str) -> Path:
        if file_ext(input_path).lower() == fmt:
            return input_path

        output_path = input_path.with_name(f"{input_path.stem}.{fmt}")
        if output_path.exists():
            self.logger.debug("Converted video asset found: %s", output_path.name)
            return output_path

        input_hash = get_file_hash(input_path)
        cache_file = ensure_dir(self.cache_path) / f"{input_hash}.{fmt}"
        if cache_file.exists():
            self.logger.debug("Converted video asset found at cache: %s (%s)", input_path.name, fmt)
        else:
            self.logger.info("Converting video asset: %s → %s", input_path.name, fmt)
            self.transcoder.transcode_video(input_path, cache_file)

        shutil.copyfile(cache_file, output_path)
        return output_path

    def get_video_poster(self, input_path: Path) -> Path:
        input_hash = get_file_hash(input_path)
        # Short hash keeps posters of same-named videos apart
        output_path = input_path.with_name(f"{input_path.stem}-{input_hash[:4]}.jpg")
        if output_path.exists():
            self.logger.debug("Video poster found: %s", output_path.name)
            return output_path

        cache_file = ensure_dir(self.posters_path) / f"{input_hash}.jpg"
        if cache_file.exists():
            self.logger.debug("Video poster found at cache: %s", input_path.name)
        else:
            self.logger.info("Creating video poster: %s", input_path.name)
            self.transcoder.extract_poster_frame(input_path, cache_file)

        shutil.copyfile(cache_file, output_path)
        return output_path
