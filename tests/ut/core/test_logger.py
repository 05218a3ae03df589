"""日志配置测试 — JSON 格式与包上下文字段"""

from __future__ import annotations

import json
import logging

import pytest

from compostore.utils.logger import JSONFormatter, reset_logging, setup_logging


def _record(msg: str = "就绪", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "compostore.core.store.downloader", logging.INFO, __file__, 1, msg, (), None,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJSONFormatter:
    def test_base_fields(self) -> None:
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "compostore.core.store.downloader"
        assert data["message"] == "就绪"
        assert "package" not in data

    def test_context_fields(self) -> None:
        data = json.loads(JSONFormatter().format(
            _record(package="psr/log@3.0.0", error_code="INTEGRITY_MISMATCH"),
        ))
        assert data["package"] == "psr/log@3.0.0"
        assert data["error_code"] == "INTEGRITY_MISMATCH"

    def test_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


def test_setup_logging_json(capsys: pytest.CaptureFixture[str]) -> None:
    root_level = logging.getLogger().level
    try:
        setup_logging("DEBUG", json_output=True)
        logging.getLogger("compostore.test").info("hi", extra={"package": "a/b@1"})
        line = capsys.readouterr().err.strip().splitlines()[-1]
        assert json.loads(line)["package"] == "a/b@1"
    finally:
        reset_logging()
        logging.getLogger().setLevel(root_level)


def test_download_logs_carry_package(downloader, fake_remote, archives, caplog) -> None:
    url = fake_remote.serve("https://example.com/a.zip", archives.zip({"a/composer.json": "{}"}))
    with caplog.at_level(logging.INFO, logger="compostore.core.store.downloader"):
        downloader.ensure_package("acme/a", "1.0.0", url)
    packages = {getattr(r, "package", None) for r in caplog.records}
    assert "acme/a@1.0.0" in packages
