"""cstore 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from compostore import __version__
from compostore.core.config import init_config
from compostore.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default="", help="配置文件路径 (YAML)")
def main(config_path: str) -> None:
    """cstore - Composer 依赖全局存储，硬链接到各项目 vendor/"""
    setup_logging(
        level=os.getenv("CSTORE_LOG_LEVEL", "INFO"),
        json_output=os.getenv("CSTORE_LOG_JSON", "") == "1",
    )
    if config_path:
        init_config(config_path)


# 注册各领域子命令
from compostore.cli.cmd_store import register as _reg_store  # noqa: E402

_reg_store(main)
