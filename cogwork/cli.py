"""
CLI 模块

命令行接口实现。
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import click
from loguru import logger

from cogwork import __version__
from cogwork.exceptions import CogworkError
from cogwork.logger import setup_logger
from cogwork.modlist import ModList, ProfileRegistry
from cogwork.models import CogworkSettings, Game, SUPPORTED_GAMES, find_games, get_game
from cogwork.models.package import PackageVersion
from cogwork.paths import CogworkPaths
from cogwork.services import ModResolver, PackageSourceIndex, default_source_index
from cogwork.state import CogworkState
from cogwork.utils import load_config_file

DEFAULT_PROFILE = "default"


def load_settings(config_path: Optional[str]) -> CogworkSettings:
    """加载配置文件，未指定时使用默认位置"""
    path = config_path or CogworkPaths.default_config_file()
    try:
        return CogworkSettings.from_dict(load_config_file(path))
    except CogworkError as e:
        raise click.ClickException(f"配置错误: {e}")


@dataclass
class CliContext:
    settings: CogworkSettings
    paths: CogworkPaths
    game_override: Optional[str] = None
    profile_override: Optional[str] = None
    no_interactive: bool = False
    registry: ProfileRegistry = field(init=False)

    def __post_init__(self):
        self.registry = ProfileRegistry(self.paths)

    def load_state(self) -> CogworkState:
        return CogworkState.load(self.paths.state_file)

    def choose_game(self, query: str, exact_only: bool = False) -> Game:
        """按名称选择游戏，有歧义时提示用户"""
        matches = find_games(query, exact_only=exact_only)
        if not matches:
            raise click.ClickException(f"找不到游戏: {query}")
        if len(matches) == 1:
            return matches[0]

        click.echo("找到多个匹配的游戏:")
        click.echo()
        for i, game in enumerate(matches, start=1):
            click.echo(f"({i}): {game.name}")
        if self.no_interactive:
            raise click.ClickException("游戏名称有歧义")
        click.echo()
        index = click.prompt(
            f"请选择游戏 (1-{len(matches)})", type=click.IntRange(1, len(matches))
        )
        return matches[index - 1]

    def active_game(self) -> Game:
        if self.game_override:
            return self.choose_game(self.game_override)

        slug = self.load_state().active_game_slug
        game = get_game(slug)
        if game is None:
            raise click.ClickException("未选择游戏，请先运行 'cogwork game select'")
        return game

    def source_index(self, game: Game) -> PackageSourceIndex:
        return default_source_index(game, self.paths, self.settings)

    def open_profile(self, game: Game, index: PackageSourceIndex) -> ModList:
        """打开当前档案；默认档案不存在时自动创建，--profile 指定的档案必须已存在"""
        if self.profile_override:
            try:
                return self.registry.require(game, self.profile_override, index)
            except CogworkError as e:
                raise click.ClickException(f"{e}，请先运行 'cogwork profile create'")

        mod_list = self.registry.get(game, DEFAULT_PROFILE, index)
        if mod_list is None:
            mod_list = self.registry.create(game, DEFAULT_PROFILE, index)
        return mod_list


def _run(coro):
    try:
        return asyncio.run(coro)
    except CogworkError as e:
        logger.error(f"运行错误: {e}")
        raise click.ClickException(str(e))


async def _load_index(ctx: CliContext, manual: bool = False) -> Tuple[Game, PackageSourceIndex]:
    game = ctx.active_game()
    index = ctx.source_index(game)
    await index.get_all_packages(manual)
    if not index.all_packages:
        raise click.ClickException(f"无法获取 '{game.name}' 的包索引")
    return game, index


@click.group()
@click.option("--game", "game_override", help="覆盖当前选择的游戏")
@click.option("--profile", "profile_override", help="覆盖当前使用的模组档案")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="配置文件路径")
@click.option("-N", "--no-interactive", is_flag=True, help="不请求用户输入，直接失败")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    game_override: Optional[str],
    profile_override: Optional[str],
    config_path: Optional[str],
    no_interactive: bool,
    debug: bool,
):
    """Cogwork - 游戏模组包管理工具"""
    settings = load_settings(config_path)
    paths = CogworkPaths(settings.cache_dir, settings.data_dir)
    setup_logger(level="DEBUG" if debug else None, log_dir=paths.log_dir)
    ctx.obj = CliContext(
        settings, paths, game_override, profile_override, no_interactive
    )


@main.group()
def game():
    """选择或列出支持的游戏"""


@game.command("list")
def game_list():
    """列出所有支持的游戏"""
    for supported in SUPPORTED_GAMES:
        click.echo(supported.name)


@game.command("select")
@click.argument("name", nargs=-1, required=True)
@click.option("-e", "--exact", is_flag=True, help="只接受完整名称或 slug")
@click.pass_obj
def game_select(ctx: CliContext, name: Tuple[str, ...], exact: bool):
    """选择要管理的游戏"""
    selected = ctx.choose_game(" ".join(name), exact_only=exact)
    state = ctx.load_state()
    state.active_game_slug = selected.slug
    state.save(ctx.paths.state_file)
    click.echo(f"已选择游戏: {selected.name}")


@main.command()
@click.pass_obj
def status(ctx: CliContext):
    """显示当前游戏和模组档案"""
    slug = ctx.load_state().active_game_slug
    active = get_game(slug)
    click.echo(f"当前游戏: {active.name if active else '<未选择>'}")
    click.echo(f"模组档案: {ctx.profile_override or DEFAULT_PROFILE}")
    if active:
        profiles = ctx.registry.list_ids(active)
        click.echo(f"已有档案: {', '.join(profiles) if profiles else '<无>'}")


@main.group()
def profile():
    """管理模组档案"""


@profile.command("list")
@click.pass_obj
def profile_list(ctx: CliContext):
    """列出当前游戏的所有档案"""
    for profile_id in ctx.registry.list_ids(ctx.active_game()):
        click.echo(profile_id)


@profile.command("create")
@click.argument("name", nargs=-1, required=True)
@click.pass_obj
def profile_create(ctx: CliContext, name: Tuple[str, ...]):
    """创建新档案"""
    current_game = ctx.active_game()
    created = ctx.registry.create(
        current_game, " ".join(name), ctx.source_index(current_game)
    )
    click.echo(f"已创建档案: {created.id}")


@main.command()
@click.option("--refresh", is_flag=True, help="手动刷新包索引")
@click.option("--search", "search_text", help="按名称过滤")
@click.pass_obj
def packages(ctx: CliContext, refresh: bool, search_text: Optional[str]):
    """列出可用的包"""

    async def run():
        _, index = await _load_index(ctx, manual=refresh)
        if search_text:
            return ModResolver(index).search(search_text)
        return index.all_packages

    for package in _run(run()):
        click.echo(f"{package.full_name} ({package.latest.version})")


@main.group()
def mods():
    """管理模组档案中的模组"""


def _resolve_all(index: PackageSourceIndex, refs: Tuple[str, ...]) -> List[PackageVersion]:
    resolver = ModResolver(index)
    try:
        return [resolver.resolve(ref) for ref in refs]
    except CogworkError as e:
        raise click.ClickException(str(e))


@mods.command("add")
@click.argument("refs", nargs=-1, required=True)
@click.pass_obj
def mods_add(ctx: CliContext, refs: Tuple[str, ...]):
    """添加模组 (Author-Name[-Version] 或包名)"""
    current_game, index = _run(_load_index(ctx))
    versions = _resolve_all(index, refs)
    mod_list = ctx.open_profile(current_game, index)
    try:
        for package_version in versions:
            mod_list.add(package_version)
    except CogworkError as e:
        raise click.ClickException(str(e))
    click.echo(str(mod_list), nl=False)


@mods.command("remove")
@click.argument("refs", nargs=-1, required=True)
@click.pass_obj
def mods_remove(ctx: CliContext, refs: Tuple[str, ...]):
    """移除模组（忽略版本部分）"""
    current_game, index = _run(_load_index(ctx))
    resolver = ModResolver(index)
    mod_list = ctx.open_profile(current_game, index)
    try:
        for package in [resolver.resolve_package(ref) for ref in refs]:
            mod_list.remove(package)
    except CogworkError as e:
        raise click.ClickException(str(e))
    click.echo(str(mod_list), nl=False)


@mods.command("list")
@click.pass_obj
def mods_list(ctx: CliContext):
    """显示已添加的模组和依赖"""
    current_game, index = _run(_load_index(ctx))
    mod_list = ctx.open_profile(current_game, index)
    click.echo(str(mod_list), nl=False)


if __name__ == "__main__":
    main()
