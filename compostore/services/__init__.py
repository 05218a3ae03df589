"""服务层 — CLI 共享的安装 / 清理编排逻辑"""

from compostore.services.install_service import InstallReport, InstallService
from compostore.services.prune_service import PruneService

__all__ = ["InstallService", "InstallReport", "PruneService"]
