# tests/conftest.py
"""
Pytest configuration and shared fixtures for craftport tests
"""
import pytest
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests

from craftport.config_utils import get_config
from craftport.errors import transcode_error
from craftport.transcode import Transcoder


# ============================================================================
# Fakes
# ============================================================================

class FakeTranscoder(Transcoder):
    """Writes tagged copies of the input instead of running Pillow/ffmpeg"""

    def __init__(self):
        self.calls: List[Tuple[str, Path, Path]] = []
        self.fail_on: Optional[str] = None

    def _write(self, operation: str, tag: bytes, input_path: Path, output_path: Path):
        self.calls.append((operation, input_path, output_path))
        if self.fail_on == operation:
            raise transcode_error(operation, input_path, output_path, details="boom")
        output_path.write_bytes(tag + input_path.read_bytes())

    def convert_image(self, input_path: Path, output_path: Path) -> None:
        self._write("convert_image", b"jpg:", input_path, output_path)

    def transcode_video(self, input_path: Path, output_path: Path) -> None:
        tag = output_path.suffix.lstrip(".").encode() + b":"
        self._write("transcode_video", tag, input_path, output_path)

    def extract_poster_frame(self, input_path: Path, output_path: Path) -> None:
        self._write("extract_poster_frame", b"poster:", input_path, output_path)

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)


class FakeResponse:
    """Just enough of requests.Response for streamed downloads"""

    def __init__(self, url: str, body: bytes = b"", content_type: Optional[str] = None,
                 status_code: int = 200, fail_after_chunks: Optional[int] = None):
        self.url = url
        self.body = body
        self.status_code = status_code
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.fail_after_chunks = fail_after_chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} for url: {self.url}")

    def iter_content(self, chunk_size: int = 1):
        for n, start in enumerate(range(0, len(self.body), chunk_size)):
            if self.fail_after_chunks is not None and n >= self.fail_after_chunks:
                raise requests.ConnectionError("connection reset")
            yield self.body[start:start + chunk_size]


class FakeSession:
    """Serves registered URLs; everything else is a 404"""

    def __init__(self):
        self.routes: Dict[str, dict] = {}
        self.requested: List[str] = []

    def add(self, url: str, body: bytes, content_type: Optional[str] = "image/jpeg", **kwargs):
        self.routes[url] = dict(body=body, content_type=content_type, **kwargs)

    def get(self, url: str, stream: bool = False, timeout=None):
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(url, status_code=404)
        return FakeResponse(url, **route)

    def count(self, url: str) -> int:
        return self.requested.count(url)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the user's ~/.craftport and CRAFTPORT_* variables out of tests"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in ("CRAFTPORT_SRC", "CRAFTPORT_DIST", "CRAFTPORT_CACHE",
                 "CRAFTPORT_WORKERS", "CRAFTPORT_DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def work_dir(tmp_path) -> Path:
    """Project folder with an empty craft/ export folder"""
    root = tmp_path / "project"
    (root / "craft").mkdir(parents=True)
    return root


@pytest.fixture
def config(work_dir):
    return get_config(work_dir)


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sample_document_text() -> str:
    return """# Day one | Kilimanjaro
> Date: 2021-07-15 10:21
> Category: Travel, Africa
> Tags: Hiking
> Series: Kilimanjaro
> Language: ua
> ShowToc: true

![summit.jpg](https://res.craft.do/summit.jpg)

**Uhuru Peak**

We started before dawn.

----
![Camp](https://res.craft.do/camp.jpg)
![Glacier](https://res.craft.do/glacier.jpg)
----

[Route notes](https://res.craft.do/route.pdf)

[IMG_1549.mov](https://res.craft.do/IMG_1549.mov "Sunrise")

[Trailer](https://www.youtube.com/watch?v=CPAjeQFygjQ)
"""


@pytest.fixture
def sample_session(session) -> FakeSession:
    """Session serving every asset referenced by sample_document_text"""
    session.add("https://res.craft.do/summit.jpg", b"summit", "image/jpeg")
    session.add("https://res.craft.do/camp.jpg", b"camp", "image/jpeg")
    session.add("https://res.craft.do/glacier.jpg", b"glacier", "image/jpeg")
    session.add("https://res.craft.do/route.pdf", b"%PDF", "application/pdf")
    session.add("https://res.craft.do/IMG_1549.mov", b"movie", "video/quicktime")
    return session
