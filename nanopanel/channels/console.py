"""
终端渠道实现 - 用 rich 在终端中渲染内容，用 prompt_toolkit 读取操作。

终端里只有一个操作者（config.actor_id）。每条渲染的内容显示为一个面板，
面板下方按顺序给交互控件编号：
    [1] ◀  [2] ▶           按钮
    [3] Chapter ▾           选择菜单，输入 "3 2" 选择第 2 个选项
    (4) ⏮️  (5) ▶️          表情回应
输入编号或控件的 custom_id 即触发交互，输入 exit/quit 退出。
交互总是作用于最近一条仍带有控件的内容。
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Literal

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from nanopanel.bus.events import InteractionEvent
from nanopanel.bus.queue import InteractionBus
from nanopanel.channels.base import BaseChannel
from nanopanel.config.schema import ConsoleConfig
from nanopanel.errors import ContentNotFoundError
from nanopanel.render.components import Attachment, Button, Container, ContentHandle, ContentSpec, SelectMenu
from nanopanel.utils.helpers import ensure_dir, get_data_path

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}


@dataclass
class Selection:
    """一次终端输入解析出的交互。"""
    affordance_id: str
    kind: Literal["component", "reaction"] = "component"
    values: list[str] = field(default_factory=list)


def numbered_affordances(spec: ContentSpec, reactions: list[str]) -> list[Button | SelectMenu | str]:
    """按显示顺序列出可操作的控件（已禁用的除外），表情回应排在最后。"""
    items: list[Button | SelectMenu | str] = [
        c for row in spec.action_rows for c in row.components if not c.disabled
    ]
    items.extend(reactions)
    return items


def parse_selection(text: str, spec: ContentSpec, reactions: list[str]) -> Selection | None:
    """
    把终端输入解析为交互。

    支持：
        "2"            第 2 个控件
        "btn_next"     按 custom_id 指定控件
        "3 1"          第 3 个控件是选择菜单时，选其第 1 个选项
        "ssm_x c:1"    按 custom_id 指定选择菜单并给出选项值

    返回:
        解析结果；输入无法对应任何控件时返回 None
    """
    parts = text.split()
    if not parts:
        return None

    items = numbered_affordances(spec, reactions)
    target: Button | SelectMenu | str | None = None
    head = parts[0]
    if head.isdigit() and 1 <= int(head) <= len(items):
        target = items[int(head) - 1]
    else:
        target = next(
            (i for i in items if (i if isinstance(i, str) else i.custom_id) == head),
            None,
        )

    if target is None:
        return None
    if isinstance(target, str):
        return Selection(affordance_id=target, kind="reaction")
    if isinstance(target, Button):
        return Selection(affordance_id=target.custom_id)

    if len(parts) < 2:
        return None
    choice = parts[1]
    if choice.isdigit() and 1 <= int(choice) <= len(target.options):
        value = target.options[int(choice) - 1].value
    elif any(o.value == choice for o in target.options):
        value = choice
    else:
        return None
    return Selection(affordance_id=target.custom_id, values=[value])


class ConsoleChannel(BaseChannel):
    """
    终端渠道。

    属性:
        console: rich 控制台
        messages: 当前存在的内容 {message_id: ContentSpec}
        reactions: 当前内容上的表情回应
    """

    name = "console"

    def __init__(
        self,
        config: ConsoleConfig | None = None,
        bus: InteractionBus | None = None,
        console: Console | None = None,
    ):
        super().__init__(config or ConsoleConfig(), bus or InteractionBus())
        self.console = console or Console()
        self.messages: dict[str, ContentSpec] = {}
        self.reactions: dict[str, list[str]] = {}
        self._handles: dict[str, ContentHandle] = {}
        self._ids = itertools.count(1)
        self._session: PromptSession | None = None
        self._reader: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """开始读取终端输入（在后台任务中运行）。"""
        if self._running:
            return
        history_file = ensure_dir(get_data_path() / "history") / "console_history"
        self._session = PromptSession(history=FileHistory(str(history_file)), multiline=False)
        self._running = True
        self._reader = asyncio.create_task(self._read_loop())

    async def stop(self) -> None:
        self._running = False
        if self._reader and self._reader is not asyncio.current_task():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        self._reader = None

    async def wait_closed(self) -> None:
        """等待用户退出输入循环。"""
        if self._reader is not None:
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

    async def _read_loop(self) -> None:
        while self._running:
            try:
                with patch_stdout():
                    text = await self._session.prompt_async(HTML("<b fg='ansiblue'>›</b> "))
            except (EOFError, KeyboardInterrupt):
                break

            command = text.strip()
            if not command:
                continue
            if command.lower() in EXIT_COMMANDS:
                break
            await self.submit(command)

        self._running = False

    async def submit(self, text: str) -> InteractionEvent | None:
        """把一行输入作为操作者的交互提交到总线。"""
        handle = self.active_handle
        if handle is None:
            self.console.print("[dim]Nothing to interact with.[/dim]")
            return None

        selection = parse_selection(text, self.messages[handle.message_id], self.reactions[handle.message_id])
        if selection is None:
            self.console.print(f"[yellow]Unknown choice: {text}[/yellow]")
            return None

        return await self._handle_interaction(
            message_id=handle.message_id,
            actor_id=self.config.actor_id,
            affordance_id=selection.affordance_id,
            chat_id=handle.chat_id,
            kind=selection.kind,
            values=selection.values,
        )

    @property
    def active_handle(self) -> ContentHandle | None:
        """最近一条仍带有可操作控件的内容。"""
        for message_id in reversed(list(self.messages)):
            if numbered_affordances(self.messages[message_id], self.reactions[message_id]):
                return self._handles[message_id]
        return None

    # ------------------------------------------------------------------
    # 渲染
    # ------------------------------------------------------------------

    def _renderable(self, message_id: str, spec: ContentSpec) -> Panel:
        parts = []
        if spec.content:
            parts.append(Text(spec.content))
        for embed in spec.embeds:
            body = Text()
            if embed.title:
                body.append(f"{embed.title}\n", style="bold")
            if embed.description:
                body.append(f"{embed.description}\n")
            for name, value in embed.fields:
                body.append(f"{name}: ", style="cyan")
                body.append(f"{value}\n")
            if embed.footer:
                body.append(embed.footer, style="dim")
            parts.append(Panel(body, border_style=embed.color or "blue"))
        for component in spec.components:
            if isinstance(component, Container):
                parts.append(Panel(Text("\n".join(component.texts)), border_style=component.accent_color or "magenta"))
        for attachment in spec.files:
            parts.append(Text(f"📎 {self._attachment_label(attachment)}", style="dim"))

        parts.extend(self._affordance_lines(spec, self.reactions.get(message_id, [])))
        return Panel(Group(*parts), title=f"[dim]{message_id}[/dim]", title_align="right")

    @staticmethod
    def _attachment_label(attachment: Attachment) -> str:
        return attachment.url or attachment.filename

    def _affordance_lines(self, spec: ContentSpec, reactions: list[str]) -> list[Text]:
        lines: list[Text] = []
        number = itertools.count(1)
        for row in spec.action_rows:
            line = Text()
            for component in row.components:
                label = component.display if isinstance(component, Button) else (component.placeholder or "Select ▾")
                if self.config.show_ids:
                    label = f"{label} <{component.custom_id}>"
                if component.disabled:
                    line.append(f"[-] {label}  ", style="dim strike")
                    continue
                line.append(f"[{next(number)}] {label}  ", style="bold")
                if isinstance(component, SelectMenu):
                    options = ", ".join(
                        f"{i}:{'*' if o.default else ''}{o.label}" for i, o in enumerate(component.options, 1)
                    )
                    line.append(f"({options})  ", style="dim")
            lines.append(line)
        if reactions:
            lines.append(Text("  ".join(f"({next(number)}) {r}" for r in reactions)))
        return lines

    def _print(self, message_id: str) -> None:
        self.console.print(self._renderable(message_id, self.messages[message_id]))

    async def render(self, chat_id: str, spec: ContentSpec) -> ContentHandle:
        message_id = f"c{next(self._ids)}"
        self.messages[message_id] = spec
        self.reactions[message_id] = []
        handle = ContentHandle(channel=self.name, chat_id=str(chat_id), message_id=message_id, content=spec)
        self._handles[message_id] = handle
        self._print(message_id)
        return handle

    async def rerender(self, handle: ContentHandle, spec: ContentSpec) -> ContentHandle:
        self._require(handle)
        self.messages[handle.message_id] = spec
        handle.content = spec
        self._handles[handle.message_id] = handle
        self._print(handle.message_id)
        return handle

    async def delete(self, handle: ContentHandle) -> None:
        self._require(handle)
        del self.messages[handle.message_id]
        self.reactions.pop(handle.message_id, None)
        self._handles.pop(handle.message_id, None)
        self.console.print(f"[dim]({handle.message_id} deleted)[/dim]")

    async def add_reaction(self, handle: ContentHandle, emoji: str) -> None:
        self._require(handle)
        self.reactions[handle.message_id].append(emoji)
        handle.reactions.append(emoji)

    async def clear_reactions(self, handle: ContentHandle) -> None:
        self._require(handle)
        self.reactions[handle.message_id] = []
        handle.reactions.clear()

    async def respond(
        self,
        event: InteractionEvent,
        action: str,
        payload: str | ContentSpec | None,
        ephemeral: bool,
    ) -> None:
        logger.debug(f"Console {action} for {event.affordance_id}")
        if payload is None:
            return
        if action == "update" and isinstance(payload, ContentSpec):
            handle = self._handles.get(event.message_id)
            if handle is not None:
                await self.rerender(handle, payload)
            return

        text = payload if isinstance(payload, str) else payload.content
        style = "dim italic" if ephemeral else ""
        self.console.print(Text(f"↳ {text}", style=style))

    def _require(self, handle: ContentHandle) -> None:
        if handle.message_id not in self.messages:
            raise ContentNotFoundError(f"Unknown message {handle.message_id}")
