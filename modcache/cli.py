"""
CLI 模块

命令行接口实现。
"""

import asyncio
import functools
import json
from pathlib import Path
from typing import Optional

import click
import toml
import yaml
from loguru import logger

from modcache import __version__
from modcache.exceptions import InvalidArgument, ModCacheError
from modcache.logger import setup_logger
from modcache.models import CacheConfig, Category, LocalMod
from modcache.orchestrator import ModCacheOrchestrator
from modcache.services import Installation, load_credentials


def load_config(config_path: Optional[str]) -> dict:
    """加载配置文件，未指定时返回空配置"""
    if not config_path:
        return {}

    path = Path(config_path)

    if not path.exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()

    if suffix == ".toml":
        return toml.load(config_path)
    elif suffix == ".json":
        return json.loads(path.read_text())
    elif suffix in (".yaml", ".yml"):
        return yaml.safe_load(path.read_text()) or {}
    else:
        raise click.ClickException(f"不支持的配置文件格式: {suffix}")


def run_async(fn):
    """在事件循环中运行异步命令，并统一处理 ModCacheError"""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(fn(*args, **kwargs))
        except ModCacheError as e:
            logger.debug(f"错误详情: {e.to_dict()}")
            raise click.ClickException(str(e))

    return wrapper


def print_table(headers, rows, no_headers: bool = False):
    """按列宽对齐输出"""
    table = [list(map(str, headers))] if not no_headers else []
    table.extend([list(map(str, row)) for row in rows])
    if not table:
        return
    widths = [max(len(row[i]) for row in table) for i in range(len(table[0]))]
    for row in table:
        click.echo(" ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())


@click.group()
@click.option("--config", "config_path", type=click.Path(), help="配置文件路径")
@click.option("-D", "--directory", "install_dir", help="游戏安装目录")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx, config_path: Optional[str], install_dir: Optional[str], debug: bool):
    """ModCache - 模组目录缓存与安装工具"""
    setup_logger(level="DEBUG" if debug else None)

    raw = load_config(config_path)
    if install_dir:
        raw = dict(raw.get("modcache", raw))
        raw["install_dir"] = install_dir
    try:
        ctx.obj = CacheConfig.from_dict(raw)
    except ModCacheError as e:
        raise click.ClickException(str(e))


@main.command()
@click.pass_obj
@run_async
async def update(config: CacheConfig):
    """更新本地模组缓存"""
    config.show_progress = True
    async with ModCacheOrchestrator(config) as orchestrator:
        written = await orchestrator.update()
    logger.success(f"完成! 缓存了 {written} 个模组")


@main.command()
@click.pass_obj
@run_async
async def clean(config: CacheConfig):
    """清理暂存的拉取结果"""
    async with ModCacheOrchestrator(config) as orchestrator:
        removed = orchestrator.clean()
    logger.info(f"已删除 {removed} 个暂存目录")


@main.command()
@click.argument("term")
@click.option("-t", "--sort-by-date", is_flag=True, help="按发布日期排序")
@click.option(
    "-c",
    "--category",
    "categories",
    multiple=True,
    type=click.Choice(Category.names()),
    help="只显示该分类中的模组",
)
@click.pass_obj
@run_async
async def search(config: CacheConfig, term: str, sort_by_date: bool, categories):
    """搜索本地模组缓存"""
    async with ModCacheOrchestrator(config) as orchestrator:
        mods = await orchestrator.search(
            term, categories=list(categories), sort_by_date=sort_by_date
        )

    rows = []
    for mod in mods:
        summary = mod.summary
        if len(summary) > 30:
            summary = summary[:30] + "..."
        released = mod.released_at.strftime("%Y-%m-%d") if mod.released_at else ""
        rows.append((mod.name, mod.category, mod.latest, released, summary))
    print_table(["NAME", "CATEGORY", "VERSION", "RELEASED", "SUMMARY"], rows)


@main.command()
def categories():
    """列出所有模组分类"""
    for name in Category.names():
        click.echo(name)


def _mod_rows(mods: list[LocalMod]):
    return [(m.name, m.latest, str(m.enabled).lower()) for m in mods]


@main.command(name="list")
@click.option("-H", "--no-headers", is_flag=True, help="不输出表头")
@click.pass_obj
def list_mods(config: CacheConfig, no_headers: bool):
    """列出已安装的模组"""
    try:
        mods = Installation(config.install_dir).installed_mods()
    except ModCacheError as e:
        raise click.ClickException(str(e))
    print_table(["NAME", "VERSION", "ENABLED"], _mod_rows(mods), no_headers)


@main.command()
@click.option("-H", "--no-headers", is_flag=True, help="不输出表头")
@click.pass_obj
@run_async
async def cached(config: CacheConfig, no_headers: bool):
    """列出已缓存的模组文件"""
    async with ModCacheOrchestrator(config) as orchestrator:
        mods = orchestrator.artifacts.cached_mods()
    rows = [(m.name, ", ".join(str(v) for v in m.versions)) for m in mods]
    print_table(["NAME", "VERSIONS"], rows, no_headers)


@main.command()
@click.argument("mods", nargs=-1, required=True)
@click.option("-o", "--optional", "install_optional", is_flag=True, help="安装可选依赖")
@click.option("-e", "--enable", is_flag=True, help="安装后启用模组")
@click.pass_obj
@run_async
async def install(config: CacheConfig, mods, install_optional: bool, enable: bool):
    """安装模组及其依赖"""
    try:
        credentials = load_credentials(config.install_dir)
    except InvalidArgument as e:
        # 全部命中缓存时不需要凭据
        logger.debug(f"未加载凭据: {e}")
        credentials = None
    async with ModCacheOrchestrator(config) as orchestrator:
        plan = await orchestrator.install(
            mods,
            credentials,
            install_optional=install_optional or None,
            enable=enable,
        )
    for name, path in plan.items():
        click.echo(f"{name}\t{path}")


if __name__ == "__main__":
    main()
