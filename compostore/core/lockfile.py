"""composer.lock 解析

只做读取与字段映射，把锁文件中的每个包转换为 PackageDescriptor。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from compostore.core.exceptions import ValidationError
from compostore.core.models import (
    PackageDescriptor,
    PackageKey,
    SourceKind,
    source_kind_from_dist_type,
)

logger = logging.getLogger(__name__)


class LockFileParser:
    """composer.lock 解析器"""

    def __init__(self, lock_file_path: str | Path) -> None:
        self.lock_file_path = Path(lock_file_path)
        if not self.lock_file_path.is_file():
            raise ValidationError(f"找不到 composer.lock: {self.lock_file_path}")
        try:
            data = json.loads(self.lock_file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"composer.lock 不是合法 JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("composer.lock 顶层必须是对象")
        self.data: dict[str, Any] = data

    def get_packages(self, include_dev: bool = True) -> list[dict[str, Any]]:
        """运行时包 + （可选）开发包"""
        packages = list(self.data.get("packages") or [])
        if include_dev:
            packages.extend(self.data.get("packages-dev") or [])
        return [p for p in packages if isinstance(p, dict)]

    def get_descriptors(self, include_dev: bool = True) -> list[PackageDescriptor]:
        return [to_descriptor(p) for p in self.get_packages(include_dev)]


def to_descriptor(package: dict[str, Any]) -> PackageDescriptor:
    """锁文件中的单个包 → PackageDescriptor

    path 类型的包可能只在 source.url 中给出地址。
    """
    name = package.get("name")
    version = package.get("version")
    if not isinstance(name, str) or not isinstance(version, str):
        raise ValidationError(f"锁文件条目缺少 name/version: {package!r}"[:200])

    dist = package.get("dist") or {}
    kind = source_kind_from_dist_type(dist.get("type"))
    locator = dist.get("url") or None
    if locator is None and kind == SourceKind.DIRECTORY.value:
        locator = (package.get("source") or {}).get("url") or None

    return PackageDescriptor(
        key=PackageKey.from_name(name, version),
        source_kind=kind,
        source_locator=locator,
        checksum=dist.get("shasum") or None,
        reference=dist.get("reference") or None,
    )
