# tests/test_transcode.py
"""
Tests for transcode.py - video variants, poster frames and the ffmpeg wrapper
"""
import hashlib
import subprocess
from pathlib import Path

import pytest
from PIL import Image

from craftport.errors import TranscodeError
from craftport.transcode import FFmpegTranscoder, VideoTranscoder, get_file_hash


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def video_transcoder(cache_path, transcoder):
    return VideoTranscoder(cache_path, cache_path / "posters", transcoder)


@pytest.fixture
def mov_file(tmp_path):
    folder = tmp_path / "post" / "assets"
    folder.mkdir(parents=True)
    path = folder / "sunrise-1a2b.mov"
    path.write_bytes(b"movie")
    return path


def test_get_file_hash(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 10000)
    assert get_file_hash(path) == hashlib.sha256(b"x" * 10000).hexdigest()


class TestVideoTranscoder:
    """Tests for VideoTranscoder"""

    def test_ensure_variants_for_mov(self, video_transcoder, transcoder, mov_file, cache_path):
        variants = video_transcoder.ensure_variants(mov_file, has_mov=True)
        digest = get_file_hash(mov_file)

        assert variants.mov == mov_file
        assert variants.mp4 == mov_file.with_name("sunrise-1a2b.mp4")
        assert variants.mp4.read_bytes() == b"mp4:movie"
        assert variants.poster == mov_file.with_name(f"sunrise-1a2b-{digest[:4]}.jpg")
        assert variants.poster.read_bytes() == b"poster:movie"

        assert (cache_path / f"{digest}.mp4").exists()
        assert (cache_path / "posters" / f"{digest}.jpg").exists()
        assert transcoder.count("transcode_video") == 1
        assert transcoder.count("extract_poster_frame") == 1

    def test_second_run_reuses_files(self, video_transcoder, transcoder, mov_file):
        first = video_transcoder.ensure_variants(mov_file, has_mov=True)
        second = video_transcoder.ensure_variants(mov_file, has_mov=True)

        assert first == second
        assert len(transcoder.calls) == 2

    def test_cache_shared_by_content(self, video_transcoder, transcoder, mov_file, tmp_path):
        """Same bytes under another name come from the cache"""
        video_transcoder.ensure_variants(mov_file, has_mov=True)

        other_folder = tmp_path / "other" / "assets"
        other_folder.mkdir(parents=True)
        other = other_folder / "copy-9f9f.mov"
        other.write_bytes(b"movie")

        variants = video_transcoder.ensure_variants(other, has_mov=True)

        assert variants.mp4.read_bytes() == b"mp4:movie"
        assert variants.poster.exists()
        assert len(transcoder.calls) == 2

    def test_mp4_source_gets_mov(self, video_transcoder, tmp_path):
        folder = tmp_path / "assets"
        folder.mkdir()
        mp4 = folder / "clip.mp4"
        mp4.write_bytes(b"clip")

        variants = video_transcoder.ensure_variants(mp4, has_mp4=True)

        assert variants.mp4 == mp4
        assert variants.mov == folder / "clip.mov"
        assert variants.mov.read_bytes() == b"mov:clip"

    def test_same_format_not_converted(self, video_transcoder, transcoder, mov_file):
        assert video_transcoder.convert_video_asset(mov_file, "mov") == mov_file
        assert transcoder.calls == []

    def test_transcode_failure_propagates(self, video_transcoder, transcoder, mov_file, cache_path):
        transcoder.fail_on = "transcode_video"

        with pytest.raises(TranscodeError):
            video_transcoder.ensure_variants(mov_file, has_mov=True)

        assert not mov_file.with_name("sunrise-1a2b.mp4").exists()


class TestFFmpegTranscoder:
    """Tests for FFmpegTranscoder (subprocess mocked)"""

    @staticmethod
    def _fake_run(returncode=0, stderr=""):
        def run(cmd, **kwargs):
            # ffmpeg writes to the last argument
            Path(cmd[-1]).write_bytes(b"out")
            return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)
        return run

    def test_transcode_video_command(self, tmp_path, mocker):
        run = mocker.patch("craftport.transcode.subprocess.run", side_effect=self._fake_run())
        source = tmp_path / "a.mov"
        source.write_bytes(b"mov")
        output = tmp_path / "a.mp4"

        FFmpegTranscoder(timeout=42).transcode_video(source, output)

        cmd = run.call_args.args[0]
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-i") + 1] == str(source)
        assert ["-c", "copy", "-movflags", "+faststart"] == cmd[cmd.index("-c"):cmd.index("-c") + 4]
        assert cmd[-1].endswith(".part.mp4")
        assert run.call_args.kwargs["timeout"] == 42
        assert output.read_bytes() == b"out"
        assert not Path(cmd[-1]).exists()

    def test_poster_command(self, tmp_path, mocker):
        run = mocker.patch("craftport.transcode.subprocess.run", side_effect=self._fake_run())
        source = tmp_path / "a.mov"
        source.write_bytes(b"mov")

        FFmpegTranscoder().extract_poster_frame(source, tmp_path / "p.jpg")

        cmd = run.call_args.args[0]
        assert cmd[cmd.index("-ss") + 1] == "00:00:01"
        assert cmd[cmd.index("-frames:v") + 1] == "1"

    def test_failure_raises_and_cleans_up(self, tmp_path, mocker):
        mocker.patch(
            "craftport.transcode.subprocess.run",
            side_effect=self._fake_run(returncode=1, stderr="Invalid data found"),
        )
        output = tmp_path / "a.mp4"

        with pytest.raises(TranscodeError) as exc_info:
            FFmpegTranscoder().transcode_video(tmp_path / "a.mov", output)

        assert "Invalid data found" in str(exc_info.value)
        assert not output.exists()
        assert not (tmp_path / "a.part.mp4").exists()

    def test_missing_binary(self, tmp_path, mocker):
        mocker.patch("craftport.transcode.subprocess.run", side_effect=FileNotFoundError("ffmpeg"))

        with pytest.raises(TranscodeError) as exc_info:
            FFmpegTranscoder().transcode_video(tmp_path / "a.mov", tmp_path / "a.mp4")

        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_timeout(self, tmp_path, mocker):
        mocker.patch(
            "craftport.transcode.subprocess.run",
            side_effect=subprocess.TimeoutExpired("ffmpeg", 1),
        )

        with pytest.raises(TranscodeError):
            FFmpegTranscoder(timeout=1).extract_poster_frame(tmp_path / "a.mov", tmp_path / "p.jpg")

    def test_convert_image_with_pillow(self, tmp_path):
        source = tmp_path / "scan.tiff"
        Image.new("RGBA", (4, 4), (255, 0, 0, 128)).save(source, "TIFF")
        output = tmp_path / "scan.jpg"

        FFmpegTranscoder().convert_image(source, output)

        with Image.open(output) as img:
            assert img.format == "JPEG"
            assert img.size == (4, 4)
        assert not (tmp_path / "scan.part.jpg").exists()

    def test_convert_image_invalid_input(self, tmp_path):
        source = tmp_path / "broken.tiff"
        source.write_bytes(b"not an image")

        with pytest.raises(TranscodeError):
            FFmpegTranscoder().convert_image(source, tmp_path / "broken.jpg")

        assert not (tmp_path / "broken.jpg").exists()
        assert not (tmp_path / "broken.part.jpg").exists()
