"""核心数据模型

包标识、包描述、完成标记和存储统计集中定义，
store / downloader / linker / services 统一从此处导入。
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import quote, unquote

from compostore.core.exceptions import ValidationError

# =========================================================================
# 来源类型
# =========================================================================


class SourceKind(str, Enum):
    """包来源类型"""

    ARCHIVE_ZIP = "archive-zip"
    ARCHIVE_TAR = "archive-tar"
    ARCHIVE_TAR_GZ = "archive-tar-gz"
    DIRECTORY = "directory"


# composer.lock 中 dist.type -> SourceKind
_DIST_TYPE_MAP: dict[str, str] = {
    "zip": SourceKind.ARCHIVE_ZIP.value,
    "tar": SourceKind.ARCHIVE_TAR.value,
    "tgz": SourceKind.ARCHIVE_TAR_GZ.value,
    "tar.gz": SourceKind.ARCHIVE_TAR_GZ.value,
    "path": SourceKind.DIRECTORY.value,
}

SUPPORTED_SOURCE_KINDS = frozenset(k.value for k in SourceKind)


def source_kind_from_dist_type(dist_type: str | None) -> str:
    """dist.type 转换为来源类型；未知类型原样返回，由下载器拒绝"""
    if not dist_type:
        return SourceKind.ARCHIVE_ZIP.value
    return _DIST_TYPE_MAP.get(dist_type, dist_type)


# =========================================================================
# 包标识
# =========================================================================


@dataclass(frozen=True)
class PackageKey:
    """包标识 (vendor, name, version)

    编码为单个路径段 `<vendor>+<name>@<percent-encoded-version>`，
    版本做 percent 编码，避免 dev-feature/foo 这类版本产生嵌套目录。
    """

    vendor: str
    name: str
    version: str

    def __post_init__(self) -> None:
        for label, value in (("vendor", self.vendor), ("name", self.name)):
            if not value or "/" in value or "\\" in value or value in (".", ".."):
                raise ValidationError(f"非法的包{label}: {value!r}")
        if not self.version:
            raise ValidationError(f"包 {self.vendor}/{self.name} 缺少版本号")

    @classmethod
    def from_name(cls, full_name: str, version: str) -> PackageKey:
        """从 "vendor/name" 形式的包名构造"""
        vendor, sep, name = full_name.partition("/")
        if not sep:
            raise ValidationError(f"包名必须是 vendor/name 形式: {full_name}")
        return cls(vendor, name, version)

    @classmethod
    def from_segment(cls, segment: str) -> PackageKey:
        """从存储目录名解码，与 segment 互逆"""
        head, sep, encoded_version = segment.rpartition("@")
        vendor, plus, name = head.partition("+")
        if not sep or not plus:
            raise ValidationError(f"无法解析存储目录名: {segment}")
        return cls(vendor, name, unquote(encoded_version))

    @property
    def segment(self) -> str:
        return f"{self.vendor}+{self.name}@{quote(self.version, safe='')}"

    @property
    def full_name(self) -> str:
        return f"{self.vendor}/{self.name}"

    def __str__(self) -> str:
        return f"{self.full_name}@{self.version}"


# =========================================================================
# 包描述（由锁文件解析产生）
# =========================================================================


@dataclass
class PackageDescriptor:
    """单个待安装包的描述"""

    key: PackageKey
    source_kind: str = SourceKind.ARCHIVE_ZIP.value
    source_locator: str | None = None
    checksum: str | None = None     # dist.shasum (sha1)
    reference: str | None = None    # dist.reference

    @property
    def content_token(self) -> str | None:
        """缓存失效令牌：优先校验和，其次来源引用"""
        return self.checksum or self.reference or None

    @property
    def name(self) -> str:
        return self.key.full_name


# =========================================================================
# 完成标记
# =========================================================================


@dataclass
class CompletionMarker:
    """存储条目完成标记

    磁盘格式为 JSON `{"completed_at": ..., "sha1": ...}`。
    旧格式是裸 ISO-8601 时间戳字符串，读取时 content_token 为 None。
    """

    completed_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )
    content_token: str | None = None

    def to_json(self) -> str:
        data: dict[str, str] = {"completed_at": self.completed_at}
        if self.content_token is not None:
            data["sha1"] = self.content_token
        return json.dumps(data)

    @classmethod
    def parse(cls, text: str) -> CompletionMarker:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return cls(completed_at=text.strip(), content_token=None)
        if not isinstance(data, dict):
            return cls(completed_at=str(data), content_token=None)
        token = data.get("sha1", data.get("content_token"))
        return cls(
            completed_at=str(data.get("completed_at", "")),
            content_token=token if isinstance(token, str) and token else None,
        )


# =========================================================================
# 统计
# =========================================================================


@dataclass
class StoreStats:
    """存储统计"""

    count: int = 0
    total_bytes: int = 0
    root_path: str = ""


def format_bytes(size: int) -> str:
    """字节数格式化为 B/KB/MB/GB"""
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"
