"""测试共享 fixture — 临时存储、归档构造、伪下载

fake_remote 把 urllib.request.urlopen 替换为内存实现:
  - 按 URL 返回注册的字节内容，未注册的 URL 抛 URLError
  - 每次调用追加一行到 calls.log，多进程下也能统计下载次数
"""

from __future__ import annotations

import hashlib
import io
import tarfile
import urllib.error
import zipfile
from pathlib import Path

import pytest

from compostore.core.config import Config
from compostore.core.store import GlobalStore, PackageDownloader


def build_zip(entries: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


def build_tar(entries: dict[str, str | bytes], gzip: bool = False) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz" if gzip else "w") as tf:
        for name, content in entries.items():
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def sha1_of(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()  # noqa: S324


class FakeRemote:
    """URL → 字节内容的伪远端"""

    def __init__(self, log_file: Path) -> None:
        self.log_file = log_file
        self.responses: dict[str, bytes] = {}

    def serve(self, url: str, data: bytes) -> str:
        self.responses[url] = data
        return url

    def urlopen(self, req, timeout=None):
        url = req.full_url if hasattr(req, "full_url") else req
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(url + "\n")
        if url not in self.responses:
            raise urllib.error.URLError(f"no route to {url}")
        return io.BytesIO(self.responses[url])

    def calls(self, url: str | None = None) -> int:
        if not self.log_file.exists():
            return 0
        lines = self.log_file.read_text(encoding="utf-8").splitlines()
        return len(lines) if url is None else lines.count(url)


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(store_path=str(tmp_path / "store"))


@pytest.fixture()
def store(config: Config) -> GlobalStore:
    return GlobalStore(config.store_path)


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    p = tmp_path / "project"
    p.mkdir()
    return p


@pytest.fixture()
def downloader(store: GlobalStore, project: Path, config: Config) -> PackageDownloader:
    return PackageDownloader(store, project_path=project, config=config)


@pytest.fixture()
def fake_remote(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeRemote:
    remote = FakeRemote(tmp_path / "calls.log")
    monkeypatch.setattr("urllib.request.urlopen", remote.urlopen)
    return remote


class Archives:
    zip = staticmethod(build_zip)
    tar = staticmethod(build_tar)
    sha1 = staticmethod(sha1_of)


@pytest.fixture()
def archives() -> type[Archives]:
    return Archives
