"""
CLI 命令模块 - nanopanel 的所有命令行命令定义。

本模块使用 Typer 框架定义 nanopanel 的命令：
- onboard：在 ~/.nanopanel/ 下生成默认配置文件
- config：以表格形式查看当前生效的配置
- demo：在终端里运行一个多章节分页器（ConsoleChannel）
- ask：在终端里弹出一个确认提示框，打印作答结果

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（表格、面板）
- prompt_toolkit：终端渠道的交互输入（在 ConsoleChannel 中使用）
"""

import asyncio
import sys
from typing import Any

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from nanopanel import __logo__, __version__

# 创建 Typer 应用实例（CLI 根命令）
app = typer.Typer(
    name="nanopanel",
    help=f"{__logo__} nanopanel - Interactive panels for rendered chat content",
    no_args_is_help=True,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    """重设 loguru 输出：默认 INFO，--verbose 时 DEBUG。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def version_callback(value: bool):
    """版本号回调：当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} nanopanel v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """nanopanel CLI 根命令回调。"""
    pass


# ============================================================================
# Onboard / Config
# ============================================================================


@app.command()
def onboard():
    """在 ~/.nanopanel/ 下创建默认配置文件 config.json。"""
    from nanopanel.config.loader import get_config_path, save_config
    from nanopanel.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print(f"\n{__logo__} nanopanel is ready!")
    console.print("\nNext steps:")
    console.print("  1. Adjust timeouts and messages in [cyan]~/.nanopanel/config.json[/cyan]")
    console.print("  2. Try it: [cyan]nanopanel demo[/cyan]")


def _flatten(data: dict[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    rows: list[tuple[str, Any]] = []
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            rows.extend(_flatten(value, path))
        else:
            rows.append((path, value))
    return rows


@app.command("config")
def show_config():
    """显示当前生效的配置（配置文件 + 环境变量）。"""
    from nanopanel.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[dim]defaults[/dim]'}")

    table = Table(title="nanopanel configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in _flatten(config.model_dump()):
        table.add_row(key, str(value))
    console.print(table)


# ============================================================================
# Demo
# ============================================================================


def _demo_paginator(config, reactions: bool, timeout: float):
    from nanopanel.pagination import ChapterData, NavigationType, Paginator
    from nanopanel.render import Container, Embed

    paginator = Paginator(
        navigation_type=NavigationType.LONG_JUMP,
        dynamic=True,
        use_reactions=reactions,
        timeout=timeout,
        config=config,
    )
    paginator.add_chapter("Welcome to nanopanel. Pick a chapter below.", ChapterData(label="Intro"))
    paginator.add_chapter(
        [Embed(title=f"Guide {i}/6", description=f"This is page {i} of the guide.") for i in range(1, 7)],
        ChapterData(label="Guide", description="Six pages, jump enabled"),
    )
    paginator.add_chapter(
        [Container(texts=[f"Gallery item {i}", "Containers stay in place on timeout."]) for i in range(1, 4)],
        ChapterData(label="Gallery"),
    )
    paginator.on("page_change", lambda page, index: logger.debug(f"Now at {index.chapter}:{index.nested}"))
    return paginator


@app.command()
def demo(
    reactions: bool = typer.Option(False, "--reactions", help="Use reactions instead of buttons"),
    timeout: float = typer.Option(60.0, "--timeout", "-t", help="Idle timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """在终端中运行一个三章节的分页器示例。"""
    from nanopanel.channels import ConsoleChannel
    from nanopanel.config.loader import load_config

    _configure_logging(verbose)
    config = load_config()

    async def run():
        channel = ConsoleChannel(config.console)
        paginator = _demo_paginator(config, reactions, timeout)

        console.print(f"{__logo__} Demo (enter a number to interact, [bold]exit[/bold] to quit)\n")
        await paginator.send(channel, "console")
        await channel.start()

        ended = asyncio.create_task(paginator.wait_ended())
        closed = asyncio.create_task(channel.wait_closed())
        await asyncio.wait({ended, closed}, return_when=asyncio.FIRST_COMPLETED)

        paginator.stop("closed")
        await paginator.wait_ended()
        await channel.stop()
        closed.cancel()
        console.print(f"\nSession ended: {paginator.collector.reason}")

    asyncio.run(run())


@app.command()
def ask(
    question: str = typer.Argument("Are you sure you want to continue?", help="Question to ask"),
    timeout: float = typer.Option(30.0, "--timeout", "-t", help="Seconds to wait for an answer"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs"),
):
    """在终端中弹出一个确认提示框。"""
    from nanopanel.channels import ConsoleChannel
    from nanopanel.config.loader import load_config
    from nanopanel.prompt import PromptResolveType, prompt
    from nanopanel.render import Embed

    _configure_logging(verbose)
    config = load_config()

    async def run():
        channel = ConsoleChannel(config.console)
        await channel.start()
        try:
            result = await prompt(
                channel,
                "console",
                embed=Embed(title=config.prompt.default_title, description=question),
                on_resolve=[PromptResolveType.DISABLE_COMPONENTS],
                timeout=timeout,
                config=config,
            )
        finally:
            await channel.stop()

        if result.timed_out:
            console.print("[yellow]No answer (timed out)[/yellow]")
        elif result.confirmed:
            console.print("[green]✓ Confirmed[/green]")
        else:
            console.print("[red]✗ Rejected[/red]")

    asyncio.run(run())


if __name__ == "__main__":
    app()
