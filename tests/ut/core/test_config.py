"""配置与异常体系测试"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from compostore.core import config as config_mod
from compostore.core.config import Config, get_config, init_config
from compostore.core.exceptions import (
    ConfigError,
    CStoreError,
    IntegrityMismatchError,
    LockAcquisitionError,
    MissingSourceError,
    UnsafeArchiveEntryError,
    ValidationError,
)


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_mod, "_current", None)


class TestConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CSTORE_PATH", raising=False)
        cfg = Config()
        assert cfg.store_path == str(Path.home() / ".composer-store")
        assert cfg.vendor_dir == "vendor"
        assert cfg.download_timeout == 60

    def test_env_store_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("CSTORE_PATH", str(tmp_path / "s"))
        assert Config().store_path == str(tmp_path / "s")

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cstore.yml"
        _write_yaml(path, {"store_path": "/data/store", "download_timeout": 5, "mirror": "x"})
        cfg = Config.from_file(str(path))
        assert cfg.store_path == "/data/store"
        assert cfg.download_timeout == 5
        assert cfg.extra == {"mirror": "x"}

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert Config.from_file(str(tmp_path / "nope.yml")).lock_file == "composer.lock"

    @pytest.mark.parametrize("field_name", ["download_timeout", "download_chunk_size"])
    def test_non_positive_rejected(self, field_name: str) -> None:
        with pytest.raises(ConfigError):
            Config(**{field_name: 0})

    def test_init_config_sets_global(self, tmp_path: Path) -> None:
        path = tmp_path / "cstore.yml"
        _write_yaml(path, {"vendor_dir": "lib"})
        cfg = init_config(str(path))
        assert get_config() is cfg
        assert cfg.to_dict()["vendor_dir"] == "lib"


class TestExceptions:
    @pytest.mark.parametrize(("exc", "code"), [
        (ConfigError, "CONFIG_ERROR"),
        (MissingSourceError, "MISSING_SOURCE"),
        (UnsafeArchiveEntryError, "UNSAFE_ARCHIVE_ENTRY"),
        (LockAcquisitionError, "LOCK_ACQUISITION_FAILURE"),
    ])
    def test_codes(self, exc, code: str) -> None:
        e = exc("x")
        assert isinstance(e, CStoreError)
        assert e.code == code

    def test_validation_is_value_error(self) -> None:
        e = ValidationError("bad", details=["a"])
        assert isinstance(e, ValueError)
        assert e.details == ["a"]

    def test_integrity_fields(self) -> None:
        e = IntegrityMismatchError("m", expected="a", actual="b")
        assert (e.expected, e.actual) == ("a", "b")
