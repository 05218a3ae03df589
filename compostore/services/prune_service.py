"""清理服务 — 删除不再被任何项目引用的存储条目

引用关系来自各项目 vendor 下的 .cstore-link 来源标记：
标记内容是条目的绝对路径，其目录名即条目 key。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from compostore.core.linker import LINK_MARKER
from compostore.core.store import GlobalStore

logger = logging.getLogger(__name__)


class PruneService:
    """存储清理服务"""

    def __init__(self, store: GlobalStore) -> None:
        self.store = store

    @staticmethod
    def find_referenced(scan_dirs: list[str | Path]) -> set[str]:
        """递归扫描目录中的来源标记，返回被引用的条目 key"""
        referenced: set[str] = set()
        for scan_dir in scan_dirs:
            root = Path(scan_dir)
            if not root.is_dir():
                logger.warning("扫描目录不存在: %s", root)
                continue
            for dirpath, _dirnames, filenames in os.walk(root):
                if LINK_MARKER not in filenames:
                    continue
                marker = Path(dirpath) / LINK_MARKER
                try:
                    recorded = marker.read_text(encoding="utf-8").strip()
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("来源标记不可读: %s - %s", marker, e)
                    continue
                if recorded:
                    referenced.add(Path(recorded).name)
        logger.info("扫描到 %d 个被引用的包", len(referenced))
        return referenced

    def plan(self, scan_dirs: list[str | Path] | None = None) -> list[str]:
        """待删除的条目；不指定扫描目录时即为全部条目"""
        stored = self.store.list_packages()
        if not scan_dirs:
            return stored
        referenced = self.find_referenced(scan_dirs)
        return [key for key in stored if key not in referenced]

    def prune(
        self, scan_dirs: list[str | Path] | None = None, dry_run: bool = False,
    ) -> list[str]:
        """执行清理，返回（将要）删除的条目"""
        to_prune = self.plan(scan_dirs)
        if dry_run:
            return to_prune
        removed = [key for key in to_prune if self.store.remove_package(key)]
        logger.info("已从存储删除 %d 个包", len(removed))
        return removed
