"""vendor 目录链接模块

- vendor_linker.py: 存储条目 → vendor/<vendor>/<name>，可执行文件 → vendor/bin
- autoloader.py: 调用外部 composer 重新生成 autoload
"""

from compostore.core.linker.autoloader import AutoloaderGenerator
from compostore.core.linker.vendor_linker import LINK_MARKER, VendorLinker

__all__ = ["VendorLinker", "AutoloaderGenerator", "LINK_MARKER"]
