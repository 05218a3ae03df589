"""composer.lock 解析测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from compostore.core.exceptions import ValidationError
from compostore.core.lockfile import LockFileParser, to_descriptor
from compostore.core.models import PackageKey


def _write_lock(path: Path, data) -> Path:
    lock = path / "composer.lock"
    lock.write_text(data if isinstance(data, str) else json.dumps(data))
    return lock


LOCK = {
    "packages": [
        {
            "name": "psr/log",
            "version": "3.0.0",
            "dist": {
                "type": "zip",
                "url": "https://api.github.com/repos/php-fig/log/zipball/fe5ea303",
                "reference": "fe5ea303b0887d5caefd3d431c3e61ad47037001",
                "shasum": "",
            },
        },
        {
            "name": "acme/local",
            "version": "dev-main",
            "dist": {"type": "path", "url": "packages/local", "reference": "abc"},
        },
    ],
    "packages-dev": [
        {
            "name": "phpunit/phpunit",
            "version": "10.5.0",
            "dist": {"type": "zip", "url": "https://example.com/phpunit.zip", "shasum": "a" * 40},
        },
    ],
}


class TestLockFileParser:
    def test_includes_dev_by_default(self, tmp_path: Path) -> None:
        parser = LockFileParser(_write_lock(tmp_path, LOCK))
        names = [d.name for d in parser.get_descriptors()]
        assert names == ["psr/log", "acme/local", "phpunit/phpunit"]

    def test_no_dev(self, tmp_path: Path) -> None:
        parser = LockFileParser(_write_lock(tmp_path, LOCK))
        assert [p["name"] for p in parser.get_packages(include_dev=False)] == ["psr/log", "acme/local"]

    def test_descriptor_mapping(self, tmp_path: Path) -> None:
        psr, local, phpunit = LockFileParser(_write_lock(tmp_path, LOCK)).get_descriptors()
        assert psr.key == PackageKey("psr", "log", "3.0.0")
        assert psr.source_kind == "archive-zip"
        assert psr.checksum is None
        assert psr.content_token == "fe5ea303b0887d5caefd3d431c3e61ad47037001"
        assert local.source_kind == "directory"
        assert local.source_locator == "packages/local"
        assert phpunit.content_token == "a" * 40

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="找不到 composer.lock"):
            LockFileParser(tmp_path / "composer.lock")

    @pytest.mark.parametrize("content", ["{broken", "[]"])
    def test_invalid_content(self, tmp_path: Path, content: str) -> None:
        with pytest.raises(ValidationError):
            LockFileParser(_write_lock(tmp_path, content))

    def test_empty_sections(self, tmp_path: Path) -> None:
        parser = LockFileParser(_write_lock(tmp_path, {"packages": None}))
        assert parser.get_descriptors() == []


class TestToDescriptor:
    def test_path_falls_back_to_source_url(self) -> None:
        d = to_descriptor({
            "name": "acme/lib", "version": "1.0",
            "dist": {"type": "path"}, "source": {"type": "path", "url": "../lib"},
        })
        assert d.source_locator == "../lib"

    def test_vcs_only_has_no_locator(self) -> None:
        d = to_descriptor({
            "name": "acme/lib", "version": "dev-main",
            "source": {"type": "git", "url": "https://github.com/acme/lib.git"},
        })
        assert d.source_locator is None
        assert d.source_kind == "archive-zip"

    def test_unknown_dist_type_kept(self) -> None:
        d = to_descriptor({"name": "acme/lib", "version": "1.0", "dist": {"type": "rar", "url": "x"}})
        assert d.source_kind == "rar"

    def test_missing_name(self) -> None:
        with pytest.raises(ValidationError):
            to_descriptor({"version": "1.0"})
