"""
CLI 命令模块 - toolbot 的命令行命令定义。

本模块使用 Typer 框架定义 toolbot 的 CLI 命令：
- onboard：初始化配置文件
- agent：直接与 Agent 交互（单条消息或交互式对话）
- status：查看配置状态

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（Markdown 渲染、状态动画）
- prompt_toolkit：交互式输入（历史记录、行编辑）
"""

import asyncio
import os
import signal
import sys

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.text import Text

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout

from toolbot import __version__, __logo__

# 创建 Typer 应用实例（CLI 根命令）
app = typer.Typer(
    name="toolbot",
    help=f"{__logo__} toolbot - Tool-calling AI Agent runtime",
    no_args_is_help=True,
)

console = Console()
EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}  # 退出交互模式的命令集合

# ---------------------------------------------------------------------------
# CLI 输入：使用 prompt_toolkit 实现编辑和历史记录
# ---------------------------------------------------------------------------

_PROMPT_SESSION: PromptSession | None = None
_SAVED_TERM_ATTRS = None  # 保存的终端原始属性（用于退出时恢复）


def _restore_terminal() -> None:
    """恢复终端到原始状态（prompt_toolkit 可能修改了回显等属性）。"""
    if _SAVED_TERM_ATTRS is None:
        return
    try:
        import termios
        termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, _SAVED_TERM_ATTRS)
    except (ImportError, OSError):
        pass


def _init_prompt_session() -> None:
    """
    创建 prompt_toolkit 会话，启用持久化文件历史记录。

    历史文件保存在 ~/.toolbot/history/cli_history。
    """
    global _PROMPT_SESSION, _SAVED_TERM_ATTRS
    from toolbot.utils.helpers import get_data_path

    try:
        import termios
        _SAVED_TERM_ATTRS = termios.tcgetattr(sys.stdin.fileno())
    except (ImportError, OSError):
        pass

    history_dir = get_data_path("history")

    _PROMPT_SESSION = PromptSession(
        history=FileHistory(str(history_dir / "cli_history")),
        enable_open_in_editor=False,
        multiline=False,
    )


def _print_agent_response(response: str, render_markdown: bool) -> None:
    """以一致的终端样式渲染 Agent 回复。支持 Markdown 或纯文本两种模式。"""
    content = response or ""
    body = Markdown(content) if render_markdown else Text(content)
    console.print()
    console.print(f"[cyan]{__logo__} toolbot[/cyan]")
    console.print(body)
    console.print()


def _is_exit_command(command: str) -> bool:
    """判断用户输入是否为退出命令。"""
    return command.lower() in EXIT_COMMANDS


async def _read_interactive_input_async() -> str:
    """使用 prompt_toolkit 异步读取用户输入。"""
    if _PROMPT_SESSION is None:
        raise RuntimeError("Call _init_prompt_session() first")
    try:
        with patch_stdout():
            return await _PROMPT_SESSION.prompt_async(
                HTML("<b fg='ansiblue'>You:</b> "),
            )
    except EOFError as exc:
        raise KeyboardInterrupt from exc


def version_callback(value: bool):
    """版本号回调：当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} toolbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """toolbot CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """
    初始化 toolbot 配置。

    在 ~/.toolbot/ 下创建默认配置文件 config.json，并打印后续操作指引。
    """
    from toolbot.config.loader import get_config_path, save_config
    from toolbot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} toolbot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your API key to [cyan]~/.toolbot/config.json[/cyan]")
    console.print("  2. Chat: [cyan]toolbot agent -m \"Hello!\"[/cyan]")


def _make_provider(config):
    """
    根据配置创建 LiteLLM 提供者实例。

    未配置 API Key 且不是本地模型（ollama / bedrock）时打印错误并退出。
    """
    from toolbot.providers.litellm_provider import LiteLLMProvider

    p = config.provider
    model = config.agents.defaults.model
    if not p.api_key and not model.startswith(("bedrock/", "ollama/")) and not p.api_base:
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set one in ~/.toolbot/config.json under the provider section")
        raise typer.Exit(1)
    return LiteLLMProvider(
        api_key=p.api_key or None,
        api_base=p.api_base,
        default_model=model,
        extra_headers=p.extra_headers,
        timeout=p.timeout,
    )


# ============================================================================
# Agent Commands
# ============================================================================


@app.command()
def agent(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to the agent"),
    model: str = typer.Option(None, "--model", help="Override the configured model"),
    max_turns: int = typer.Option(None, "--max-turns", min=1, help="Override the configured turn limit"),
    markdown: bool = typer.Option(True, "--markdown/--no-markdown", help="Render assistant output as Markdown"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show toolbot runtime logs during chat"),
):
    """
    直接与 Agent 交互。

    1. 单条消息模式：toolbot agent -m "你好" → 运行一次并打印回复
    2. 交互模式：toolbot agent → 进入交互式对话循环，多轮共享同一个 Conversation

    运行失败（轮次耗尽、模型不可用等）时打印错误；单条消息模式以退出码 1 结束。
    """
    from loguru import logger

    from toolbot.agent.loop import Agent
    from toolbot.config.loader import load_config
    from toolbot.errors import ConfigurationError, ToolbotError

    config = load_config()
    provider = _make_provider(config)

    if logs:
        logger.enable("toolbot")
    else:
        logger.disable("toolbot")

    overrides = {}
    if model:
        overrides["model"] = model
    if max_turns:
        overrides["max_turns"] = max_turns
    try:
        bot = Agent.from_config(config, provider, **overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    def _thinking_ctx():
        if logs:
            from contextlib import nullcontext
            return nullcontext()
        return console.status("[dim]toolbot is thinking...[/dim]", spinner="dots")

    if message:
        async def run_once():
            with _thinking_ctx():
                return await bot.run(message)

        try:
            response = asyncio.run(run_once())
        except ToolbotError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)
        _print_agent_response(response, render_markdown=markdown)
        return

    _init_prompt_session()
    console.print(f"{__logo__} Interactive mode (type [bold]exit[/bold] or [bold]Ctrl+C[/bold] to quit)\n")

    def _exit_on_sigint(signum, frame):
        _restore_terminal()
        console.print("\nGoodbye!")
        os._exit(0)

    signal.signal(signal.SIGINT, _exit_on_sigint)

    async def run_interactive():
        conversation = bot.new_conversation()
        while True:
            try:
                user_input = await _read_interactive_input_async()
            except KeyboardInterrupt:
                _restore_terminal()
                console.print("\nGoodbye!")
                break

            command = user_input.strip()
            if not command:
                continue
            if _is_exit_command(command):
                _restore_terminal()
                console.print("\nGoodbye!")
                break

            # 失败的运行不会留下未回复的工具调用，对话可以继续使用
            conversation.add_user(user_input)
            try:
                with _thinking_ctx():
                    response = await bot.run_conversation(conversation)
            except ToolbotError as e:
                console.print(f"[red]Error: {e}[/red]")
                continue
            _print_agent_response(response, render_markdown=markdown)

    asyncio.run(run_interactive())


# ============================================================================
# Status Commands
# ============================================================================


@app.command()
def status():
    """显示 toolbot 配置状态：配置文件、模型、运行参数、API Key。"""
    from toolbot.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    defaults = config.agents.defaults
    retry = config.agents.retry

    console.print(f"{__logo__} toolbot Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Model: {defaults.model}")
    console.print(f"Max turns: {defaults.max_turns}")
    console.print(f"Strict tools: {defaults.strict_tools}")
    console.print(
        f"Retry: {retry.max_attempts} attempts, "
        f"{retry.initial_delay:g}s initial, {retry.max_delay:g}s max"
    )
    has_key = bool(config.provider.api_key)
    console.print(f"API key: {'[green]✓[/green]' if has_key else '[dim]not set[/dim]'}")
    if config.provider.api_base:
        console.print(f"API base: [green]{config.provider.api_base}[/green]")


if __name__ == "__main__":
    app()
