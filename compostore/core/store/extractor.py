"""归档安全解压

所有归档类型共用同一套条目路径规范化:
  - 统一分隔符为 "/"
  - 拒绝含空字节、绝对路径、盘符路径的条目
  - 丢弃空段与 "."，遇到 ".." 直接失败（不是跳过）
若所有条目共享同一个顶层目录（包装目录），解压时去掉该层。
条目内容从归档流式写入目标文件，不整体读入内存。
"""

from __future__ import annotations

import logging
import re
import shutil
import tarfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable

from compostore.core.exceptions import (
    IOFailureError,
    UnsafeArchiveEntryError,
    UnsupportedSourceKindError,
)
from compostore.core.models import SourceKind

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:/")


def normalize_entry_path(entry_name: str) -> str:
    """规范化归档条目路径

    返回以 "/" 连接的相对路径，目录条目保留结尾 "/"；
    规范化后为空（如 "./"）返回空字符串。

    Raises:
        UnsafeArchiveEntryError: 空字节、绝对路径、盘符路径或 ".." 段
    """
    if "\0" in entry_name:
        raise UnsafeArchiveEntryError("归档条目路径非法: 含空字节")

    path = entry_name.replace("\\", "/")
    if path.startswith("/") or _DRIVE_RE.match(path):
        raise UnsafeArchiveEntryError(f"归档条目路径非法: {path}")

    is_dir = path.endswith("/")
    safe: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise UnsafeArchiveEntryError(f"归档条目路径不安全: {path}")
        safe.append(part)

    if not safe:
        return ""
    return "/".join(safe) + ("/" if is_dir else "")


@dataclass
class _Entry:
    path: str                          # 规范化后的相对路径
    is_dir: bool
    opener: Callable[[], IO[bytes] | None] | None = None
    mode: int = 0


def _wrapper_dir(entries: list[_Entry]) -> str | None:
    """所有条目共享的顶层目录名；不存在时返回 None"""
    tops = {e.path.rstrip("/").split("/", 1)[0] for e in entries}
    if len(tops) != 1:
        return None
    top = next(iter(tops))
    # 唯一的顶层项若本身是文件，就不是包装目录
    for e in entries:
        if not e.is_dir and e.path == top:
            return None
    return top


def _strip_wrapper(path: str, wrapper: str | None) -> str:
    if wrapper is None:
        return path
    if path in (wrapper, wrapper + "/"):
        return ""
    if path.startswith(wrapper + "/"):
        return path[len(wrapper) + 1:]
    return path


def _write_entries(entries: list[_Entry], target: Path) -> int:
    wrapper = _wrapper_dir(entries)
    if wrapper is not None:
        logger.debug("去除包装目录: %s", wrapper)

    written = 0
    for entry in entries:
        relative = _strip_wrapper(entry.path, wrapper).strip("/")
        if not relative:
            continue
        dest = target.joinpath(*relative.split("/"))

        if entry.is_dir:
            dest.mkdir(parents=True, exist_ok=True)
            continue

        dest.parent.mkdir(parents=True, exist_ok=True)
        source = entry.opener() if entry.opener is not None else None
        if source is None:
            raise IOFailureError(f"无法读取归档条目: {entry.path}")
        with source, open(dest, "wb") as out:
            shutil.copyfileobj(source, out)
        if entry.mode & 0o111:
            dest.chmod(0o755)
        written += 1
    return written


def _extract_zip(archive: Path, target: Path) -> int:
    with zipfile.ZipFile(archive) as zf:
        entries: list[_Entry] = []
        for info in zf.infolist():
            normalized = normalize_entry_path(info.filename)
            if not normalized:
                continue
            is_dir = info.is_dir() or normalized.endswith("/")
            entries.append(_Entry(
                path=normalized,
                is_dir=is_dir,
                opener=None if is_dir else (lambda i=info: zf.open(i)),
                mode=(info.external_attr >> 16) & 0o777,
            ))
        return _write_entries(entries, target)


def _extract_tar(archive: Path, target: Path) -> int:
    with tarfile.open(archive, mode="r:*") as tf:
        entries: list[_Entry] = []
        for member in tf.getmembers():
            normalized = normalize_entry_path(member.name)
            if not normalized:
                continue
            if member.isdir():
                entries.append(_Entry(path=normalized.rstrip("/") + "/", is_dir=True))
            elif member.isreg():
                entries.append(_Entry(
                    path=normalized.rstrip("/"),
                    is_dir=False,
                    opener=lambda m=member: tf.extractfile(m),
                    mode=member.mode,
                ))
            else:
                # 符号链接、硬链接、设备文件等一律不解压
                logger.warning("跳过非普通文件条目: %s", member.name)
        return _write_entries(entries, target)


def extract_archive(archive: Path, target: Path, kind: str) -> int:
    """按来源类型解压归档到 target，返回写入的文件数

    Raises:
        UnsafeArchiveEntryError: 条目路径不安全
        IOFailureError: 归档损坏或写入失败
        UnsupportedSourceKindError: kind 不是归档类型
    """
    if kind == SourceKind.ARCHIVE_ZIP.value:
        extractor = _extract_zip
    elif kind in (SourceKind.ARCHIVE_TAR.value, SourceKind.ARCHIVE_TAR_GZ.value):
        extractor = _extract_tar
    else:
        raise UnsupportedSourceKindError(f"不支持的归档类型: {kind}")

    try:
        count = extractor(archive, target)
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise IOFailureError(f"归档损坏或格式不符 ({kind}): {e}") from e
    except OSError as e:
        raise IOFailureError(f"解压失败: {archive} -> {target} - {e}") from e
    logger.debug("解压完成: %d 个文件 -> %s", count, target)
    return count
