"""autoload 重新生成

vendor/composer/ 始终属于项目本身，不由存储管理；
链接完成后交给外部 composer 重新生成 autoload。
"""

from __future__ import annotations

import logging
from pathlib import Path

from compostore.utils.shell import CommandExecutor, get_executor

logger = logging.getLogger(__name__)

AUTOLOAD_OK = "ok"
AUTOLOAD_FAILED = "failed"
AUTOLOAD_UNAVAILABLE = "unavailable"


class AutoloaderGenerator:
    """调用 `composer dump-autoload` 重新生成 autoload 文件"""

    def __init__(
        self,
        project_path: str | Path,
        vendor_dir: str = "vendor",
        executor: CommandExecutor | None = None,
        timeout: int | None = None,
    ) -> None:
        self.project_path = Path(project_path)
        self.vendor_path = self.project_path / vendor_dir
        self.executor = executor or get_executor()
        self.timeout = timeout

    def is_available(self) -> bool:
        return self.executor.which("composer") is not None

    def ensure_composer_dir(self) -> Path:
        composer_dir = self.vendor_path / "composer"
        composer_dir.mkdir(parents=True, exist_ok=True)
        return composer_dir

    def generate(self) -> str:
        """返回 ok / failed / unavailable"""
        if not self.is_available():
            logger.warning("PATH 中没有 composer，请手动执行 `composer dump-autoload`")
            return AUTOLOAD_UNAVAILABLE

        self.ensure_composer_dir()
        result = self.executor.execute(
            ["composer", "dump-autoload", "--optimize",
             f"--working-dir={self.project_path}"],
            cwd=str(self.project_path),
            timeout=self.timeout,
        )
        if not result.success:
            logger.error(
                "autoload 生成失败 (rc=%d): %s", result.returncode, result.stderr[:500],
            )
            return AUTOLOAD_FAILED
        logger.info("autoload 已生成: %s", self.project_path)
        return AUTOLOAD_OK
