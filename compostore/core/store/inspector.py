"""包清单检查

带 scripts 的包可能在安装后改写自身文件。若硬链接，共享同一 inode 的
所有项目都会看到改动，因此这类包必须复制而非硬链接。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MANIFEST_FILE = "composer.json"


def read_manifest(package_dir: str | Path) -> dict[str, Any] | None:
    """读取包的 composer.json；不存在或无法解析时返回 None"""
    manifest = Path(package_dir) / MANIFEST_FILE
    if not manifest.is_file():
        return None
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("清单无法解析，按不可变包处理: %s - %s", manifest, e)
        return None
    return data if isinstance(data, dict) else None


def is_mutable(package_dir: str | Path) -> bool:
    """包清单声明了非空 scripts 时返回 True"""
    data = read_manifest(package_dir)
    if data is None:
        return False
    return bool(data.get("scripts"))


def declared_binaries(package_dir: str | Path) -> list[str]:
    """清单中声明的可执行入口（bin 字段），忽略空值和非字符串项"""
    data = read_manifest(package_dir)
    if data is None:
        return []
    bins = data.get("bin") or []
    if isinstance(bins, str):
        bins = [bins]
    if not isinstance(bins, list):
        return []
    return [b for b in bins if isinstance(b, str) and b]
