"""CLI — 存储安装 / 状态 / 清理命令"""

from __future__ import annotations

import sys

import click

from compostore.core.config import get_config
from compostore.core.exceptions import CStoreError
from compostore.core.models import format_bytes, source_kind_from_dist_type
from compostore.core.store import GlobalStore, PackageDownloader


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(status)
    group.add_command(prune)
    group.add_command(ensure)


def _open_store(store: str | None) -> GlobalStore:
    return GlobalStore(store or get_config().store_path)


@click.command()
@click.argument("path", default=".", type=click.Path(file_okay=False))
@click.option("--no-dev", is_flag=True, help="不安装 packages-dev")
@click.option("--no-autoload", is_flag=True, help="不重新生成 autoload")
@click.option("--store", default=None, help="自定义存储路径")
def install(path: str, no_dev: bool, no_autoload: bool, store: str | None) -> None:
    """按 composer.lock 安装依赖到 vendor/（存储优先，硬链接）"""
    from compostore.services import InstallService

    svc = InstallService(store=_open_store(store))
    try:
        report = svc.install(
            path, include_dev=not no_dev, generate_autoload=not no_autoload,
        )
    except CStoreError as e:
        click.echo(f"错误: {e}", err=True)
        sys.exit(1)

    stats = svc.store.get_stats()
    click.echo(f"  已安装:     {report.installed}")
    click.echo(f"  下载:       {report.downloaded}")
    click.echo(f"  缓存命中:   {report.cached}")
    click.echo(f"  跳过:       {report.skipped}")
    click.echo(f"  失败:       {len(report.failed)}")
    click.echo(f"  autoload:   {report.autoload}")
    click.echo(f"  存储位置:   {stats.root_path}")
    click.echo(f"  存储包数:   {stats.count}")
    click.echo(f"  存储大小:   {format_bytes(stats.total_bytes)}")

    if report.failed:
        for name, message in report.failed.items():
            click.echo(f"  ✗ {name}: {message}", err=True)
        sys.exit(1)
    click.echo("完成，vendor/ 已就绪。")


@click.command()
@click.option("--store", default=None, help="自定义存储路径")
def status(store: str | None) -> None:
    """显示全局存储统计"""
    gs = _open_store(store)
    stats = gs.get_stats()
    click.echo(f"  位置:   {stats.root_path}")
    click.echo(f"  包数:   {stats.count}")
    click.echo(f"  大小:   {format_bytes(stats.total_bytes)}")
    packages = gs.list_packages()
    if not packages:
        click.echo("存储为空。在项目中执行 `cstore install` 填充。")
        return
    for pkg in packages:
        click.echo(f"  ✓ {pkg}")


@click.command()
@click.option("--scan", multiple=True, help="扫描这些目录中引用存储的项目（可多次指定）")
@click.option("--dry-run", is_flag=True, help="只显示将删除的包")
@click.option("--yes", "-y", is_flag=True, help="不询问直接删除")
@click.option("--store", default=None, help="自定义存储路径")
def prune(scan: tuple[str, ...], dry_run: bool, yes: bool, store: str | None) -> None:
    """删除不再被任何项目引用的存储条目"""
    from compostore.services import PruneService

    svc = PruneService(_open_store(store))
    to_prune = svc.plan(list(scan))
    if not to_prune:
        click.echo("没有需要清理的包。")
        return

    click.echo(f"待删除 ({len(to_prune)}):")
    for pkg in to_prune:
        click.echo(f"  ✗ {pkg}")

    if dry_run:
        click.echo(f"将删除 {len(to_prune)} 个包（dry run）")
        return
    if not yes and not click.confirm(f"从存储删除 {len(to_prune)} 个包?", default=False):
        click.echo("已取消。")
        return

    removed = svc.prune(list(scan))
    click.echo(f"已删除 {len(removed)} 个包。")


@click.command()
@click.argument("name")
@click.argument("version")
@click.argument("url")
@click.option("--type", "dist_type", default="zip", help="dist 类型: zip / tar / tgz / tar.gz / path")
@click.option("--shasum", default=None, help="期望的 sha1 校验和")
@click.option("--reference", default=None, help="来源引用（如 commit）")
@click.option("--store", default=None, help="自定义存储路径")
def ensure(
    name: str, version: str, url: str, dist_type: str,
    shasum: str | None, reference: str | None, store: str | None,
) -> None:
    """确保单个包存在于存储中，输出条目路径"""
    downloader = PackageDownloader(_open_store(store), project_path=".")
    try:
        path = downloader.ensure_package(
            name, version, url,
            source_kind=source_kind_from_dist_type(dist_type),
            checksum=shasum, reference=reference,
        )
    except CStoreError as e:
        click.echo(f"错误 [{e.code}]: {e}", err=True)
        sys.exit(1)
    click.echo(str(path))
