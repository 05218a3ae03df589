"""全局包存储

目录布局（与既有存储逐字节兼容）:
    <root>/packages/<vendor>+<name>@<encoded-version>/...   条目内容
    <root>/packages/<key>/.cstore-complete                  完成标记 (JSON)
    <root>/metadata/locks/<sha1(key)>.lock                  仅用于加锁的空文件

不变式: 条目要么不存在，要么内容完整且带完成标记。
完成标记必须是条目的最后一次写入；只读的完成检查因此无需加锁。
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from pathlib import Path

from compostore.core.exceptions import IOFailureError
from compostore.core.models import CompletionMarker, PackageKey, StoreStats
from compostore.core.store.locking import exclusive_lock
from compostore.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

COMPLETE_MARKER = ".cstore-complete"
PACKAGES_DIR = "packages"
LOCKS_DIR = "metadata/locks"


class GlobalStore:
    """内容寻址的全局包存储"""

    def __init__(self, store_path: str | Path = "") -> None:
        if not store_path:
            from compostore.core.config import get_config
            store_path = get_config().store_path
        self.root = Path(store_path).expanduser().absolute()
        self._ensure_directories()

    @property
    def packages_dir(self) -> Path:
        return self.root / PACKAGES_DIR

    @property
    def locks_dir(self) -> Path:
        return self.root / LOCKS_DIR

    def _ensure_directories(self) -> None:
        for d in (self.root, self.packages_dir, self.locks_dir):
            try:
                d.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise IOFailureError(f"无法创建存储目录: {d} - {e}") from e

    # ------------------------------------------------------------------
    # 路径计算
    # ------------------------------------------------------------------

    def package_path(self, key: PackageKey) -> Path:
        """包在存储中的目录，如 packages/laravel+framework@11.0.0"""
        return self.packages_dir / key.segment

    def lock_path(self, key: PackageKey | str) -> Path:
        """包锁文件路径，文件名为 key 的 sha1，与 key 长度和字符无关"""
        segment = key.segment if isinstance(key, PackageKey) else key
        digest = hashlib.sha1(segment.encode("utf-8")).hexdigest()  # noqa: S324
        return self.locks_dir / f"{digest}.lock"

    # ------------------------------------------------------------------
    # 完成标记
    # ------------------------------------------------------------------

    def has_package(self, key: PackageKey) -> bool:
        """目录存在且带完成标记才视为已存储（不加锁）"""
        return self.is_complete(self.package_path(key))

    @staticmethod
    def is_complete(package_path: Path) -> bool:
        return package_path.is_dir() and (package_path / COMPLETE_MARKER).is_file()

    @staticmethod
    def mark_complete(package_path: Path, token: str | None = None) -> None:
        """写入完成标记，必须是填充条目的最后一步"""
        marker = CompletionMarker(content_token=token or None)
        try:
            atomic_write(package_path / COMPLETE_MARKER, marker.to_json())
        except OSError as e:
            raise IOFailureError(f"写入完成标记失败: {package_path} - {e}") from e

    @staticmethod
    def read_marker(package_path: Path) -> CompletionMarker | None:
        marker_file = package_path / COMPLETE_MARKER
        try:
            text = marker_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("完成标记不可读: %s - %s", marker_file, e)
            return None
        return CompletionMarker.parse(text)

    def get_stored_token(self, package_path: Path) -> str | None:
        """读取条目保存的内容令牌；标记缺失或为旧格式时返回 None"""
        marker = self.read_marker(package_path)
        return marker.content_token if marker else None

    # ------------------------------------------------------------------
    # 查询 / 删除
    # ------------------------------------------------------------------

    def list_packages(self) -> list[str]:
        """列出所有已完成条目的目录名（即编码后的 key）"""
        if not self.packages_dir.is_dir():
            return []
        return sorted(
            d.name for d in self.packages_dir.iterdir()
            if self.is_complete(d)
        )

    def remove_package(self, key: PackageKey | str) -> bool:
        """持锁递归删除条目；条目不存在时返回 False"""
        segment = key.segment if isinstance(key, PackageKey) else key
        if not segment or "/" in segment or segment in (".", ".."):
            return False
        path = self.packages_dir / segment
        with exclusive_lock(self.lock_path(segment)):
            if not path.is_dir():
                return False
            remove_tree(path)
        logger.info("已从存储删除: %s", segment)
        return True

    def get_stats(self) -> StoreStats:
        """条目数 + packages/ 下所有文件的总字节数"""
        return StoreStats(
            count=len(self.list_packages()),
            total_bytes=dir_size(self.packages_dir),
            root_path=str(self.root),
        )


def dir_size(path: Path) -> int:
    """递归统计目录下普通文件的总大小，不跟随符号链接"""
    if not path.is_dir():
        return 0
    total = 0
    for p in path.rglob("*"):
        if p.is_file() and not p.is_symlink():
            total += p.stat().st_size
    return total


def remove_tree(path: Path) -> None:
    """删除目录树；目录已不存在时静默返回"""
    if not path.exists() and not path.is_symlink():
        return
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise IOFailureError(f"删除失败: {path} - {e}") from e
