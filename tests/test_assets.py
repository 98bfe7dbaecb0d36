# tests/test_assets.py
"""
Tests for assets.py - asset naming, the download cache and normalization
"""
import pytest
import requests

from craftport.assets import (
    AssetResolver,
    content_type_to_ext,
    url_to_file_title,
)
from craftport.errors import AssetDownloadError, TranscodeError
from craftport.text_utils import md5


PHOTO_URL = "https://res.craft.do/user/full/IMG_1549.JPG"


@pytest.fixture
def cache_path(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def assets_folder(tmp_path):
    return tmp_path / "post" / "assets"


@pytest.fixture
def resolver(cache_path, transcoder, session):
    return AssetResolver(cache_path, transcoder, session=session)


class TestNaming:
    """Tests for url_to_file_title() and content_type_to_ext()"""

    def test_title_without_url_extension(self):
        """A title that repeats the file name should not keep the extension"""
        assert url_to_file_title(PHOTO_URL, "IMG_1549.JPG") == f"img-1549-{md5(PHOTO_URL)[:4]}"

    def test_title_slugified(self):
        assert url_to_file_title(PHOTO_URL, "Uhuru Peak") == f"uhuru-peak-{md5(PHOTO_URL)[:4]}"

    def test_no_title_uses_url_name(self):
        assert url_to_file_title(PHOTO_URL) == f"IMG_1549-{md5(PHOTO_URL)[:4]}"
        assert url_to_file_title(PHOTO_URL, "") == f"IMG_1549-{md5(PHOTO_URL)[:4]}"

    def test_no_title_bare_host(self):
        url = "https://example.com/"
        assert url_to_file_title(url) == f"asset-{md5(url)[:4]}"

    @pytest.mark.parametrize("content_type,ext", [
        ("image/jpeg", "jpg"),
        ("image/jpeg; charset=binary", "jpg"),
        ("video/quicktime", "mov"),
        ("application/pdf", "pdf"),
        ("image/PNG", "png"),
        ("", None),
        (None, None),
    ])
    def test_content_type_to_ext(self, content_type, ext):
        assert content_type_to_ext(content_type) == ext


class TestResolve:
    """Tests for AssetResolver.resolve()"""

    def test_download_and_copy(self, resolver, session, cache_path, assets_folder):
        session.add(PHOTO_URL, b"photo", "image/jpeg")

        resolved = resolver.resolve(PHOTO_URL, "Uhuru Peak", assets_folder)

        assert resolved.file_name == f"uhuru-peak-{md5(PHOTO_URL)[:4]}.jpg"
        assert (assets_folder / resolved.file_name).read_bytes() == b"photo"
        assert (cache_path / f"{md5(PHOTO_URL)}.jpg").read_bytes() == b"photo"

    def test_idempotent_without_second_request(self, resolver, session, assets_folder):
        session.add(PHOTO_URL, b"photo", "image/jpeg")

        first = resolver.resolve(PHOTO_URL, "Uhuru Peak", assets_folder)
        second = resolver.resolve(PHOTO_URL, "Uhuru Peak", assets_folder)

        assert first == second
        assert session.count(PHOTO_URL) == 1

    def test_cache_shared_between_posts(self, resolver, session, tmp_path):
        session.add(PHOTO_URL, b"photo", "image/jpeg")

        resolver.resolve(PHOTO_URL, None, tmp_path / "one" / "assets")
        resolved = resolver.resolve(PHOTO_URL, None, tmp_path / "two" / "assets")

        assert (tmp_path / "two" / "assets" / resolved.file_name).read_bytes() == b"photo"
        assert session.count(PHOTO_URL) == 1

    def test_preseeded_cache_extension_wins(self, resolver, session, cache_path, assets_folder):
        """A cached <hash>.png is reused as-is, no network access"""
        (cache_path / f"{md5(PHOTO_URL)}.png").write_bytes(b"png")

        resolved = resolver.resolve(PHOTO_URL, None, assets_folder)

        assert resolved.file_name.endswith(".png")
        assert session.requested == []

    def test_similar_cache_names_do_not_match(self, resolver, session, cache_path, assets_folder):
        """Only exact <hash> stems count as cache hits"""
        url_hash = md5(PHOTO_URL)
        (cache_path / f"x{url_hash}.jpg").write_bytes(b"other")
        (cache_path / f"{url_hash}0.jpg").write_bytes(b"other")
        session.add(PHOTO_URL, b"photo", "image/jpeg")

        resolved = resolver.resolve(PHOTO_URL, None, assets_folder)

        assert session.count(PHOTO_URL) == 1
        assert (assets_folder / resolved.file_name).read_bytes() == b"photo"

    def test_downloaded_variant_wins_over_url_extension(self, resolver, session, cache_path, assets_folder):
        """A .mov link served as video/mp4 keeps resolving to the .mp4 download"""
        url = "https://res.craft.do/clip.mov"
        session.add(url, b"clip", "video/mp4")

        first = resolver.resolve(url, None, assets_folder)
        # The .mov made from the download sits beside it
        (assets_folder / first.file_name).with_suffix(".mov").write_bytes(b"mov:clip")
        second = resolver.resolve(url, None, assets_folder)

        assert first.file_name == f"clip-{md5(url)[:4]}.mp4"
        assert second == first
        assert session.count(url) == 1

    def test_cache_without_extension(self, resolver, session, cache_path, assets_folder):
        session.add(PHOTO_URL, b"blob", content_type=None)

        resolved = resolver.resolve(PHOTO_URL, None, assets_folder)

        assert resolved.file_name == f"IMG_1549-{md5(PHOTO_URL)[:4]}"
        assert (cache_path / md5(PHOTO_URL)).exists()

    def test_tiff_converted_to_jpg(self, resolver, session, transcoder, cache_path, assets_folder):
        url = "https://res.craft.do/scan.tiff"
        session.add(url, b"tiff", "image/tiff")

        resolved = resolver.resolve(url, "Scan", assets_folder)

        assert resolved.file_name == f"scan-{md5(url)[:4]}.jpg"
        assert transcoder.count("convert_image") == 1
        assert (assets_folder / resolved.file_name).read_bytes() == b"jpg:tiff"
        assert sorted(p.name for p in cache_path.iterdir()) == [f"{md5(url)}.jpg"]

    def test_failed_conversion_leaves_no_cache_entry(self, resolver, session, transcoder, cache_path, assets_folder):
        url = "https://res.craft.do/blob"
        session.add(url, b"data", "application/octet-stream")
        transcoder.fail_on = "convert_image"

        with pytest.raises(TranscodeError):
            resolver.resolve(url, None, assets_folder)

        assert list(cache_path.iterdir()) == []


class TestDownloadFailures:
    """Tests for failed downloads"""

    def test_http_error(self, resolver, cache_path, assets_folder):
        with pytest.raises(AssetDownloadError) as exc_info:
            resolver.resolve("https://res.craft.do/missing.jpg", None, assets_folder)

        assert "missing.jpg" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, requests.HTTPError)
        assert list(cache_path.iterdir()) == []

    def test_interrupted_download_removes_partial(self, resolver, session, cache_path, assets_folder):
        session.add(PHOTO_URL, b"x" * 20000, "image/jpeg", fail_after_chunks=1)

        with pytest.raises(AssetDownloadError):
            resolver.resolve(PHOTO_URL, None, assets_folder)

        assert list(cache_path.iterdir()) == []

        # Next run downloads again instead of serving a truncated file
        session.add(PHOTO_URL, b"x" * 20000, "image/jpeg")
        resolved = resolver.resolve(PHOTO_URL, None, assets_folder)

        assert (assets_folder / resolved.file_name).stat().st_size == 20000
        assert session.count(PHOTO_URL) == 2

    def test_connection_error(self, resolver, session, assets_folder, mocker):
        mocker.patch.object(session, "get", side_effect=requests.ConnectionError("offline"))

        with pytest.raises(AssetDownloadError):
            resolver.resolve(PHOTO_URL, None, assets_folder)


class TestLocalAssets:
    """Tests for assets shipped next to the exported markdown"""

    def test_local_file_copied(self, resolver, session, tmp_path, assets_folder):
        source_dir = tmp_path / "craft"
        (source_dir / "images").mkdir(parents=True)
        (source_dir / "images" / "My Cat.png").write_bytes(b"cat")

        resolved = resolver.resolve("images/My%20Cat.png", "Cat", assets_folder, source_dir)

        assert resolved.file_name == f"cat-{md5('images/My%20Cat.png')[:4]}.png"
        assert (assets_folder / resolved.file_name).read_bytes() == b"cat"
        assert session.requested == []

    def test_path_outside_source_is_not_read(self, resolver, tmp_path, assets_folder):
        source_dir = tmp_path / "craft"
        source_dir.mkdir()
        (tmp_path / "secret.png").write_bytes(b"secret")

        with pytest.raises(AssetDownloadError):
            resolver.resolve("../secret.png", None, assets_folder, source_dir)

        assert not assets_folder.exists() or list(assets_folder.iterdir()) == []
