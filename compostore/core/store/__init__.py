"""全局包存储模块

拆分说明:
- global_store.py: 存储布局、完成标记、枚举与删除
- locking.py: 跨进程包锁
- extractor.py: 归档安全解压
- downloader.py: 包获取（加锁 → 命中检查 → 下载/同步 → 完成标记）
- inspector.py: 包清单检查（是否可变、声明的可执行文件）
"""

from compostore.core.store.downloader import PackageDownloader
from compostore.core.store.global_store import GlobalStore
from compostore.core.store.inspector import declared_binaries, is_mutable

__all__ = [
    "GlobalStore",
    "PackageDownloader",
    "is_mutable",
    "declared_binaries",
]
