"""包获取器 - 保证包内容在全局存储中恰好存在一份

流程（对每个 key 串行，跨进程互斥）:
  1. 获取包锁（任何退出路径都会释放）
  2. 加锁后重新检查存储：已完成且令牌一致 → 直接返回（缓存命中）
     令牌不一致 → 删除旧条目，按未命中处理
  3. 无来源地址 → MissingSourceError；类型不支持 → UnsupportedSourceKindError
  4. 新建空条目，按类型填充（目录同步 / 下载 + 校验 + 安全解压）
  5. 任一步失败都整体删除条目再抛出，绝不留下半成品
  6. 写入完成标记（最后一次写入）
"""

from __future__ import annotations

import hashlib
import hmac
import http.client
import logging
import os
import re
import shutil
import tempfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from compostore.core.config import Config

from compostore.core.exceptions import (
    IntegrityMismatchError,
    IOFailureError,
    MissingSourceError,
    UnsupportedSourceKindError,
)
from compostore.core.models import (
    SUPPORTED_SOURCE_KINDS,
    PackageDescriptor,
    PackageKey,
    SourceKind,
)
from compostore.core.store.extractor import extract_archive
from compostore.core.store.global_store import GlobalStore, remove_tree
from compostore.core.store.locking import exclusive_lock
from compostore.utils.net import file_url_to_path, redact_url, validate_url_scheme

logger = logging.getLogger(__name__)

_WINDOWS_ABS_RE = re.compile(r"^[A-Za-z]:[/\\]")


def is_absolute_locator(path: str) -> bool:
    """POSIX 绝对路径、UNC 路径、盘符路径都视为绝对路径"""
    return (
        path.startswith("/")
        or path.startswith("\\\\")
        or bool(_WINDOWS_ABS_RE.match(path))
    )


def _tokens_equal(a: str, b: str) -> bool:
    """常量时间比较令牌；令牌可能含非 ASCII 字符，按 UTF-8 字节比较"""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _discard(package_path: Path) -> None:
    """失败后的清理；清理本身出错只记录日志，不掩盖原始异常"""
    try:
        remove_tree(package_path)
    except IOFailureError as e:
        logger.error("清理残缺条目失败: %s", e)


class PackageDownloader:
    """包获取器 - 本地存储优先，未命中时下载或同步"""

    def __init__(
        self,
        store: GlobalStore,
        project_path: str | Path | None = None,
        config: Config | None = None,
    ) -> None:
        if config is None:
            from compostore.core.config import get_config
            config = get_config()
        self.store = store
        self.project_path = Path(project_path) if project_path else None
        self.timeout = config.download_timeout
        self.chunk_size = config.download_chunk_size
        self.user_agent = config.user_agent

    def ensure_package(
        self,
        name: str,
        version: str,
        source_locator: str | None,
        source_kind: str = SourceKind.ARCHIVE_ZIP.value,
        checksum: str | None = None,
        reference: str | None = None,
    ) -> Path:
        """标量参数形式的 ensure，供命令行单包调用"""
        return self.ensure(PackageDescriptor(
            key=PackageKey.from_name(name, version),
            source_kind=source_kind,
            source_locator=source_locator,
            checksum=checksum,
            reference=reference,
        ))

    def ensure(self, descriptor: PackageDescriptor) -> Path:
        """保证包已存在于存储中，返回条目路径"""
        key = descriptor.key
        package_path = self.store.package_path(key)
        token = descriptor.content_token
        ctx = {"package": str(key), "store_path": str(package_path)}

        with exclusive_lock(self.store.lock_path(key)):
            if self.store.has_package(key):
                if not self.needs_refresh(package_path, token):
                    logger.debug("缓存命中: %s -> %s", key, package_path)
                    return package_path
                remove_tree(package_path)

            if not descriptor.source_locator:
                raise MissingSourceError(
                    f"{key} 没有来源地址；仅 VCS 的包不由存储处理"
                )
            if descriptor.source_kind not in SUPPORTED_SOURCE_KINDS:
                raise UnsupportedSourceKindError(
                    f"{key} 的来源类型不受支持: {descriptor.source_kind}"
                )

            if descriptor.source_kind == SourceKind.DIRECTORY.value:
                logger.info("同步本地目录包: %s", key, extra=ctx)
            else:
                logger.info(
                    "下载: %s <- %s", key, redact_url(descriptor.source_locator), extra=ctx,
                )

            # 清理上次中断留下的残缺目录
            remove_tree(package_path)
            try:
                package_path.mkdir(parents=True)
            except OSError as e:
                raise IOFailureError(f"无法创建包目录: {package_path} - {e}") from e

            try:
                resolved_token = self._populate(descriptor, package_path)
                self.store.mark_complete(package_path, resolved_token)
            except BaseException:
                _discard(package_path)
                raise

        logger.info("就绪: %s -> %s", key, package_path, extra=ctx)
        return package_path

    def needs_refresh(self, package_path: Path, expected: str | None) -> bool:
        """提供了令牌且与已存令牌不一致时需要重新获取

        未提供令牌、或旧格式标记没有令牌，都不自动失效。
        """
        if not expected:
            return False
        stored = self.store.get_stored_token(package_path)
        if not stored:
            return False
        if _tokens_equal(stored, expected):
            return False
        logger.info(
            "缓存令牌不一致，重新获取: %s (已存 %s, 期望 %s)",
            package_path.name, stored, expected,
        )
        return True

    def _populate(self, descriptor: PackageDescriptor, package_path: Path) -> str | None:
        """填充条目，返回写入完成标记的令牌"""
        locator = descriptor.source_locator or ""
        if descriptor.source_kind == SourceKind.DIRECTORY.value:
            self._sync_directory(locator, package_path)
            return descriptor.content_token

        actual = self._download_and_extract(
            locator, descriptor.source_kind, package_path, descriptor.checksum,
        )
        return descriptor.content_token or actual

    # ------------------------------------------------------------------
    # 本地目录来源
    # ------------------------------------------------------------------

    def resolve_directory_locator(self, locator: str) -> Path:
        """解析目录来源为绝对路径；相对路径基于项目根目录而非当前工作目录"""
        candidate = locator
        if not is_absolute_locator(locator):
            parsed = urlparse(locator)
            if parsed.scheme == "file":
                candidate = file_url_to_path(locator)
            elif parsed.scheme:
                raise UnsupportedSourceKindError(
                    f"目录来源不支持该 URL 协议: {redact_url(locator)}"
                )

        path = Path(candidate)
        if not is_absolute_locator(candidate):
            base = self.project_path or Path.cwd()
            path = base / candidate

        resolved = path.resolve()
        if not resolved.is_dir():
            raise IOFailureError(f"目录来源不存在: {locator}")
        return resolved

    def _sync_directory(self, locator: str, package_path: Path) -> None:
        source = self.resolve_directory_locator(locator)
        try:
            shutil.copytree(source, package_path, dirs_exist_ok=True)
        except (shutil.Error, OSError) as e:
            raise IOFailureError(f"复制目录来源失败: {source} - {e}") from e

    # ------------------------------------------------------------------
    # 归档来源
    # ------------------------------------------------------------------

    def _download_and_extract(
        self, url: str, kind: str, package_path: Path, expected: str | None,
    ) -> str:
        """下载到临时文件并计算 sha1，校验后安全解压，返回实际 sha1"""
        validate_url_scheme(url, context=f"package download {package_path.name}")
        fd, tmp = tempfile.mkstemp(prefix="cstore_")
        tmp_path = Path(tmp)
        try:
            with os.fdopen(fd, "wb") as out:
                actual = self._download(url, out)

            if expected and not _tokens_equal(actual, expected.lower()):
                raise IntegrityMismatchError(
                    f"完整性校验失败 {redact_url(url)}: 期望 {expected}, 实际 {actual}",
                    expected=expected, actual=actual,
                )

            extract_archive(tmp_path, package_path, kind)
        finally:
            tmp_path.unlink(missing_ok=True)
        return actual

    def _download(self, url: str, out) -> str:
        """流式下载 url 到 out，边写边算 sha1"""
        sha1 = hashlib.sha1()  # noqa: S324
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                for chunk in iter(lambda: resp.read(self.chunk_size), b""):
                    sha1.update(chunk)
                    out.write(chunk)
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise IOFailureError(f"下载失败: {redact_url(url)} - {e}") from e
        return sha1.hexdigest()
