"""跨进程包锁

基于 fcntl.flock 的建议性排他锁，锁作用于打开的文件描述，
因此同一进程内的多个线程、以及多个独立进程之间都能互斥。
"""

from __future__ import annotations

import fcntl
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from compostore.core.exceptions import LockAcquisitionError

logger = logging.getLogger(__name__)


@contextmanager
def exclusive_lock(lock_path: Path) -> Iterator[None]:
    """在上下文期间持有 lock_path 上的排他锁，任何退出路径都会释放"""
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        handle = lock_path.open("a+b")
    except OSError as e:
        raise LockAcquisitionError(f"无法打开锁文件: {lock_path} - {e}") from e

    with handle:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            raise LockAcquisitionError(f"获取包锁失败: {lock_path} - {e}") from e
        logger.debug("已获取包锁: %s", lock_path.name)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            logger.debug("已释放包锁: %s", lock_path.name)
