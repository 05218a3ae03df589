"""包清单检查测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from compostore.core.store import declared_binaries, is_mutable
from compostore.core.store.inspector import read_manifest


def _pkg(tmp_path: Path, manifest) -> Path:
    (tmp_path / "composer.json").write_text(
        manifest if isinstance(manifest, str) else json.dumps(manifest)
    )
    return tmp_path


class TestIsMutable:
    @pytest.mark.parametrize(("manifest", "expected"), [
        ({"scripts": {"post-install-cmd": "php setup.php"}}, True),
        ({"scripts": {}}, False),
        ({"name": "psr/log"}, False),
        ("{not json", False),
        ("[1, 2]", False),
    ])
    def test_cases(self, tmp_path: Path, manifest, expected: bool) -> None:
        assert is_mutable(_pkg(tmp_path, manifest)) is expected

    def test_missing_manifest(self, tmp_path: Path) -> None:
        assert is_mutable(tmp_path) is False
        assert read_manifest(tmp_path) is None


class TestDeclaredBinaries:
    def test_list(self, tmp_path: Path) -> None:
        pkg = _pkg(tmp_path, {"bin": ["bin/phpunit", "", 3, "bin/other"]})
        assert declared_binaries(pkg) == ["bin/phpunit", "bin/other"]

    def test_single_string(self, tmp_path: Path) -> None:
        assert declared_binaries(_pkg(tmp_path, {"bin": "bin/tool"})) == ["bin/tool"]

    def test_absent(self, tmp_path: Path) -> None:
        assert declared_binaries(_pkg(tmp_path, {"name": "a/b"})) == []
        assert declared_binaries(_pkg(tmp_path, {"bin": {"x": 1}})) == []
