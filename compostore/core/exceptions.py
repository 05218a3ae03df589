"""统一异常体系

所有业务异常继承 CStoreError。单个包的处理失败只影响该包：
批量安装按包捕获 CStoreError、汇总后统一报告，而不是中止整个流程。
"""

from __future__ import annotations


class CStoreError(Exception):
    """存储基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(CStoreError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(CStoreError, ValueError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class MissingSourceError(CStoreError):
    """包没有可用的来源地址（如仅 VCS 的包），交由外部默认机制处理"""

    code = "MISSING_SOURCE"


class UnsupportedSourceKindError(CStoreError):
    """来源类型不受支持"""

    code = "UNSUPPORTED_SOURCE_KIND"


class IntegrityMismatchError(CStoreError):
    """下载内容的校验和与期望值不一致"""

    code = "INTEGRITY_MISMATCH"

    def __init__(self, message: str, expected: str = "", actual: str = "") -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class UnsafeArchiveEntryError(CStoreError):
    """归档条目路径不安全（路径穿越、绝对路径、空字节）"""

    code = "UNSAFE_ARCHIVE_ENTRY"


class IOFailureError(CStoreError):
    """创建 / 写入 / 复制 / 链接 / 下载失败"""

    code = "IO_FAILURE"


class LockAcquisitionError(CStoreError):
    """无法获取包锁"""

    code = "LOCK_ACQUISITION_FAILURE"
