"""compostore - Composer 依赖全局内容寻址存储

一次下载、硬链接到各项目 vendor/，消除多项目间的重复安装。
"""

__version__ = "0.1.0"
