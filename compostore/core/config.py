"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
存储根目录可通过环境变量 CSTORE_PATH 覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

from compostore import __version__
from compostore.core.exceptions import ConfigError
from compostore.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

STORE_PATH_ENV = "CSTORE_PATH"


def _default_store_path() -> str:
    env = os.environ.get(STORE_PATH_ENV, "")
    if env:
        return env
    return str(Path.home() / ".composer-store")


@dataclass
class Config:
    """全局配置"""

    # 目录
    store_path: str = field(default_factory=_default_store_path)
    vendor_dir: str = "vendor"       # 相对项目根目录
    bin_dir: str = "bin"             # 相对 vendor 目录
    lock_file: str = "composer.lock"

    # 下载
    download_timeout: int = 60       # 秒
    download_chunk_size: int = 64 * 1024
    user_agent: str = f"cstore/{__version__} (Composer Store)"

    # 安装
    include_dev: bool = True
    autoload_timeout: int = 600

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.download_timeout <= 0:
            raise ConfigError(f"download_timeout 必须为正数: {self.download_timeout}")
        if self.download_chunk_size <= 0:
            raise ConfigError(
                f"download_chunk_size 必须为正数: {self.download_chunk_size}"
            )

    @classmethod
    def from_file(cls, path: str = "cstore.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "cstore.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
