"""安装服务 — 按锁文件把所有包装入项目 vendor/

单个包失败不会中止整个安装：逐包捕获 CStoreError，
汇总到 InstallReport.failed，由 CLI 决定退出码。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from compostore.core.config import Config

from compostore.core.exceptions import CStoreError, ValidationError
from compostore.core.linker import AutoloaderGenerator, VendorLinker
from compostore.core.lockfile import LockFileParser
from compostore.core.models import SUPPORTED_SOURCE_KINDS, PackageDescriptor
from compostore.core.store import GlobalStore, PackageDownloader, is_mutable

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """安装结果汇总"""

    total: int = 0
    downloaded: int = 0
    cached: int = 0
    skipped: int = 0
    failed: dict[str, str] = field(default_factory=dict)
    autoload: str = "skipped"

    @property
    def installed(self) -> int:
        return self.total - len(self.failed) - self.skipped

    @property
    def success(self) -> bool:
        return not self.failed


class InstallService:
    """项目安装服务"""

    def __init__(
        self,
        store: GlobalStore | None = None,
        config: Config | None = None,
        autoloader_factory=AutoloaderGenerator,
    ) -> None:
        if config is None:
            from compostore.core.config import get_config
            config = get_config()
        self.config = config
        self.store = store or GlobalStore(config.store_path)
        self._autoloader_factory = autoloader_factory

    def install(
        self,
        project_path: str | Path,
        include_dev: bool | None = None,
        generate_autoload: bool = True,
    ) -> InstallReport:
        project = Path(project_path).resolve()
        if not project.is_dir():
            raise ValidationError(f"项目路径无效: {project_path}")

        if include_dev is None:
            include_dev = self.config.include_dev
        parser = LockFileParser(project / self.config.lock_file)
        descriptors = parser.get_descriptors(include_dev)
        logger.info("读取到 %d 个包: %s", len(descriptors), parser.lock_file_path)

        vendor = project / self.config.vendor_dir
        vendor.mkdir(parents=True, exist_ok=True)
        downloader = PackageDownloader(self.store, project, self.config)
        linker = VendorLinker(vendor, self.config.bin_dir)

        report = InstallReport(total=len(descriptors))
        for descriptor in descriptors:
            self._install_one(descriptor, downloader, linker, report)

        if generate_autoload:
            generator = self._autoloader_factory(
                project, self.config.vendor_dir,
                timeout=self.config.autoload_timeout,
            )
            report.autoload = generator.generate()

        if report.failed:
            logger.warning(
                "安装汇总: %d 成功, %d 失败 (%s)",
                report.installed, len(report.failed), ", ".join(report.failed),
            )
        else:
            logger.info(
                "安装完成: %d 个包 (下载 %d, 缓存 %d, 跳过 %d)",
                report.installed, report.downloaded, report.cached, report.skipped,
            )
        return report

    def _install_one(
        self,
        descriptor: PackageDescriptor,
        downloader: PackageDownloader,
        linker: VendorLinker,
        report: InstallReport,
    ) -> None:
        key = descriptor.key
        if not descriptor.source_locator:
            logger.warning("跳过 %s（没有来源地址）", key)
            report.skipped += 1
            return
        if descriptor.source_kind not in SUPPORTED_SOURCE_KINDS:
            logger.warning("跳过 %s（来源类型 '%s' 不受支持）", key, descriptor.source_kind)
            report.skipped += 1
            return

        try:
            was_cached = self.store.has_package(key) and not downloader.needs_refresh(
                self.store.package_path(key), descriptor.content_token,
            )
            store_path = downloader.ensure(descriptor)
            linker.link(store_path, key.vendor, key.name, force_copy=is_mutable(store_path))
            linker.install_executables(key.vendor, key.name)
        except CStoreError as e:
            logger.error(
                "安装失败 %s: %s", key, e,
                extra={"package": str(key), "error_code": e.code},
            )
            report.failed[descriptor.name] = str(e)
            return

        if was_cached:
            report.cached += 1
        else:
            report.downloaded += 1
