"""vendor/ 链接器 - 把存储条目投影到项目的 vendor 目录

每个 vendor/<vendor>/<name>/ 链接完成后写入 .cstore-link 来源标记，记录条目的绝对路径:
  - 标记与请求的条目一致 → 不做任何事（保留项目内对该包的本地改动）
  - 标记指向别处（过期）→ 删除整个目标目录后重新链接
文件默认硬链接，失败（跨设备、文件系统不支持）时自动退回复制；
force_copy=True 时一律复制，用于安装后会改写自身文件的包。
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from compostore.core.exceptions import IOFailureError
from compostore.core.store.global_store import COMPLETE_MARKER, remove_tree
from compostore.core.store.inspector import declared_binaries
from compostore.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

LINK_MARKER = ".cstore-link"
_SKIP_NAMES = frozenset((COMPLETE_MARKER, LINK_MARKER))


class VendorLinker:
    """把存储中的包硬链接（或复制）到 vendor/"""

    def __init__(self, vendor_path: str | Path, bin_dir: str = "bin") -> None:
        self.vendor_path = Path(vendor_path)
        self.bin_path = self.vendor_path / bin_dir

    def target_dir(self, vendor_name: str, package_name: str) -> Path:
        return self.vendor_path / vendor_name / package_name

    def link(
        self,
        store_pkg_path: str | Path,
        vendor_name: str,
        package_name: str,
        force_copy: bool = False,
    ) -> bool:
        """链接单个包，返回是否实际执行了链接（已是最新时返回 False）"""
        source = Path(store_pkg_path)
        target = self.target_dir(vendor_name, package_name)

        if target.is_dir() and self.is_linked_from(target, source):
            logger.debug("已链接，跳过: %s/%s", vendor_name, package_name)
            return False

        if target.exists() or target.is_symlink():
            logger.info("来源已变化，重新链接: %s/%s", vendor_name, package_name)
            remove_tree(target)

        # 来源标记最后写入：中断的链接没有标记，下次会整体重建
        try:
            target.mkdir(parents=True)
            self._link_directory(source, target, force_copy)
            atomic_write(target / LINK_MARKER, str(source))
        except OSError as e:
            try:
                remove_tree(target)
            except IOFailureError as cleanup_error:
                logger.error("清理未完成的链接失败: %s", cleanup_error)
            raise IOFailureError(
                f"链接失败 {vendor_name}/{package_name}: {e}"
            ) from e

        mode = "复制" if force_copy else "硬链接"
        logger.debug("已%s: %s -> %s", mode, source, target)
        return True

    @staticmethod
    def is_linked_from(target: Path, store_pkg_path: Path) -> bool:
        """目标目录的来源标记是否指向 store_pkg_path"""
        marker = target / LINK_MARKER
        try:
            recorded = marker.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return False
        return recorded == str(store_pkg_path)

    def _link_directory(self, source: Path, target: Path, force_copy: bool) -> None:
        for item in sorted(source.iterdir()):
            if item.name in _SKIP_NAMES:
                continue
            dest = target / item.name
            if item.is_dir() and not item.is_symlink():
                dest.mkdir(exist_ok=True)
                self._link_directory(item, dest, force_copy)
            else:
                link_file(item, dest, force_copy=force_copy)

    def install_executables(self, vendor_name: str, package_name: str) -> list[str]:
        """把包声明的可执行文件链接到 vendor/bin，返回新安装的文件名

        目标已存在且指向同一文件 → 跳过；指向其他包的文件 → 告警后跳过，不覆盖。
        """
        package_dir = self.target_dir(vendor_name, package_name)
        bins = declared_binaries(package_dir)
        if not bins:
            return []

        try:
            self.bin_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"无法创建 bin 目录: {self.bin_path} - {e}") from e

        installed: list[str] = []
        for relative in bins:
            if ".." in relative.replace("\\", "/").split("/"):
                logger.warning(
                    "可执行文件路径越出包目录，跳过: %s (%s/%s)", relative, vendor_name, package_name,
                )
                continue
            source = package_dir / relative.lstrip("/")
            if not source.is_file():
                logger.warning(
                    "可执行文件不存在: %s (%s/%s)", relative, vendor_name, package_name,
                )
                continue

            dest = self.bin_path / Path(relative).name
            if dest.exists() or dest.is_symlink():
                if _same_file(dest, source):
                    continue
                logger.warning("可执行文件 %s 已存在，跳过", dest.name)
                continue

            try:
                link_file(source, dest)
                dest.chmod(0o755)
            except OSError as e:
                raise IOFailureError(f"安装可执行文件失败: {dest} - {e}") from e
            installed.append(dest.name)
        return installed


def _same_file(a: Path, b: Path) -> bool:
    """真实路径相同，或是同一 inode 的硬链接"""
    try:
        return os.path.realpath(a) == os.path.realpath(b) or os.path.samefile(a, b)
    except OSError:
        return False


def link_file(source: Path, dest: Path, *, force_copy: bool = False) -> None:
    """硬链接单个文件，失败时退回复制；目标已存在则保持不动"""
    if dest.exists() or dest.is_symlink():
        return
    if not force_copy:
        try:
            os.link(source, dest)
            return
        except OSError as e:
            logger.debug("硬链接失败，改为复制: %s (%s)", source, e)
    shutil.copy2(source, dest)
