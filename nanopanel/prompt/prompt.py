"""
确认提示框模块 - "确认 / 取消" 二选一的交互提示。

一个 Prompt 对应一个 Collector：
- 只响应 btn_confirm、btn_reject 和自定义按钮
- 第一次有效点击即得出结果并结束会话
- 超时视为取消（confirmed=None，timed_out=True），按取消路径收尾

自定义按钮的 index 决定位置：
    0 = 确认按钮之前，1 = 确认与取消之间，>=2 = 取消按钮之后（默认）

用法示例：
    result = await prompt(channel, chat_id, participants=["alice"])
    if result.confirmed:
        ...
"""

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable

from loguru import logger

from nanopanel.bus.events import InteractionEvent
from nanopanel.channels.base import BaseChannel
from nanopanel.config.schema import Config, default_config
from nanopanel.errors import ContentNotFoundError, PromptError, RenderError
from nanopanel.render.components import ActionRow, Button, ButtonStyle, Container, ContentHandle, ContentSpec, Embed
from nanopanel.session.collector import Collector
from nanopanel.session.registry import call_maybe_async
from nanopanel.session.types import DeferBehavior, DispatchMode, ListenerOptions, TimeoutAction
from nanopanel.utils.helpers import short_id

CONFIRM_ID = "btn_confirm"
REJECT_ID = "btn_reject"


class PromptResolveType(str, Enum):
    """得出结果后对提示内容的处理方式（可组合）。"""
    DISABLE_COMPONENTS = "disable"
    CLEAR_COMPONENTS = "clear"
    DELETE_ON_CONFIRM = "delete_on_confirm"
    DELETE_ON_REJECT = "delete_on_reject"


@dataclass
class CustomButton:
    """
    自定义按钮。

    属性:
        button: 按钮定义；为空时生成以 custom_id 为标签的主按钮
        handler: 点击时调用，参数为交互事件
        index: 位置，见模块说明
    """
    button: Button | None = None
    handler: Callable[[InteractionEvent], Any] | None = None
    index: int = 2


@dataclass
class PromptResult:
    """提示框结果。confirmed 为 None 表示点击了自定义按钮或已超时。"""
    handle: ContentHandle | None
    confirmed: bool | None
    custom_id: str | None
    timed_out: bool = False


def _default_resolve() -> list[PromptResolveType]:
    return [PromptResolveType.DELETE_ON_CONFIRM, PromptResolveType.DELETE_ON_REJECT]


class Prompt:
    """确认提示框。"""

    def __init__(
        self,
        *,
        participants: Iterable[Any] | None = None,
        content: str | None = None,
        embed: Embed | None = None,
        container: Container | None = None,
        text_only: bool = False,
        buttons: dict[str, Button] | None = None,
        custom_buttons: dict[str, CustomButton] | None = None,
        on_resolve: list[PromptResolveType] | None = None,
        timeout: float | None = None,
        config: Config | dict[str, Any] | None = None,
    ):
        """
        参数:
            participants: 允许作答的用户，空表示所有人
            content: 纯文本内容
            embed: 富文本内容；为空时使用配置中的默认标题与描述
            container: 组合内容块，给出时替代 embed
            text_only: 只发送纯文本
            buttons: 覆盖默认按钮，键为 "confirm" / "reject"
            custom_buttons: 自定义按钮 {custom_id: CustomButton}
            on_resolve: 得出结果后的处理方式，默认确认和取消都删除提示
            timeout: 等待作答的超时（秒）；None 使用配置默认值
            config: 配置对象，或需要覆盖的部分配置字典
        """
        if isinstance(config, dict):
            config = default_config().merged(config)
        self.config = config or default_config()
        self.name = f"prompt-{short_id()}"
        self.participants = list(participants or [])
        self.content = content
        self.embed = embed or Embed(
            title=self.config.prompt.default_title,
            description=self.config.prompt.default_description,
        )
        self.container = container
        self.text_only = text_only
        self.timeout = timeout if timeout is not None else self.config.timeouts.prompt
        self.on_resolve = on_resolve if on_resolve is not None else _default_resolve()

        buttons = buttons or {}
        self.confirm_button = buttons.get("confirm") or Button(
            custom_id=CONFIRM_ID, label=self.config.prompt.confirm_label, style=ButtonStyle.SUCCESS
        )
        self.reject_button = buttons.get("reject") or Button(
            custom_id=REJECT_ID, label=self.config.prompt.reject_label, style=ButtonStyle.DANGER
        )
        self.custom_buttons: dict[str, CustomButton] = {}
        for custom_id, custom in (custom_buttons or {}).items():
            button = custom.button or Button(custom_id=custom_id, label=custom_id, style=ButtonStyle.PRIMARY)
            self.custom_buttons[custom_id] = replace(custom, button=replace(button, custom_id=custom_id))

        self.handle: ContentHandle | None = None
        self.channel: BaseChannel | None = None

    @property
    def valid_ids(self) -> list[str]:
        return [self.confirm_button.custom_id, self.reject_button.custom_id, *self.custom_buttons]

    def build_row(self, disabled: bool = False) -> ActionRow:
        """按 index 排列确认、取消与自定义按钮。"""
        customs = sorted(self.custom_buttons.values(), key=lambda c: c.index)
        buttons = [c.button for c in customs if c.index == 0]
        buttons.append(self.confirm_button)
        buttons += [c.button for c in customs if c.index == 1]
        buttons.append(self.reject_button)
        buttons += [c.button for c in customs if c.index >= 2]

        row = ActionRow(components=buttons)
        return row.disabled() if disabled else row

    def build(self, base: ContentSpec | None = None) -> ContentSpec:
        base = base or ContentSpec()
        spec = replace(
            base,
            embeds=list(base.embeds),
            components=list(base.components),
            files=list(base.files),
            flags=list(base.flags),
        )
        if not self.text_only and self.container is not None:
            spec.components.append(self.container)
            if "components_v2" not in spec.flags:
                spec.flags.append("components_v2")
        elif not self.text_only:
            spec.embeds.insert(0, self.embed)

        if self.content:
            spec.content = self.content
        spec.components.append(self.build_row())
        return spec

    async def send(self, channel: BaseChannel, chat_id: str, base: ContentSpec | None = None) -> ContentHandle:
        self.channel = channel
        self.handle = await channel.render(chat_id, self.build(base))
        return self.handle

    async def await_response(self) -> PromptResult:
        """
        等待第一次有效作答。

        异常:
            PromptError: 提示尚未发送
        """
        if self.handle is None or self.channel is None:
            raise PromptError("Prompt must be sent before awaiting a response")

        loop = asyncio.get_running_loop()
        answer: asyncio.Future = loop.create_future()

        collector = Collector(
            self.handle,
            self.channel,
            participants=self.participants,
            idle_timeout=0,
            absolute_timeout=self.timeout,
            mode=DispatchMode.SEQUENTIAL,
            on_timeout=TimeoutAction.NO_OP,
            config=self.config,
            name=self.name,
        )

        async def on_press(event: InteractionEvent) -> None:
            if answer.done():
                return
            custom = self.custom_buttons.get(event.affordance_id)
            try:
                if custom is not None and custom.handler is not None:
                    await call_maybe_async(custom.handler, event)
            finally:
                if not answer.done():
                    answer.set_result(event.affordance_id)
                collector.stop("resolved")

        def on_end(collected: list[InteractionEvent], reason: str) -> None:
            if not answer.done():
                answer.set_result(None)

        options = ListenerOptions(defer=DeferBehavior(update=True))
        for custom_id in self.valid_ids:
            collector.on(custom_id, on_press, options)
        collector.on_end(on_end)

        custom_id = await answer
        await collector.wait_ended()

        if custom_id is None:
            logger.info(f"[{self.name}] timed out after {self.timeout}s")
            await self.resolve(False)
            return PromptResult(handle=self.handle, confirmed=None, custom_id=None, timed_out=True)

        confirmed = None
        if custom_id == self.confirm_button.custom_id:
            confirmed = True
        elif custom_id == self.reject_button.custom_id:
            confirmed = False

        logger.debug(f"[{self.name}] resolved with {custom_id}")
        await self.resolve(confirmed)
        return PromptResult(handle=self.handle, confirmed=confirmed, custom_id=custom_id)

    async def resolve(self, confirmed: bool | None) -> None:
        """按 on_resolve 处理提示内容。"""
        if self.handle is None or self.channel is None:
            return

        should_delete = (
            (confirmed is True and PromptResolveType.DELETE_ON_CONFIRM in self.on_resolve)
            or (confirmed is False and PromptResolveType.DELETE_ON_REJECT in self.on_resolve)
        )
        try:
            if should_delete:
                await self.channel.delete(self.handle)
            elif PromptResolveType.CLEAR_COMPONENTS in self.on_resolve:
                self.handle = await self.channel.rerender(self.handle, self.handle.content.without_affordances())
            elif PromptResolveType.DISABLE_COMPONENTS in self.on_resolve:
                self.handle = await self.channel.rerender(self.handle, self.handle.content.disabled())
        except ContentNotFoundError:
            pass
        except RenderError as e:
            logger.warning(f"[{self.name}] failed to resolve prompt content: {e}")


async def prompt(
    channel: BaseChannel,
    chat_id: str,
    base: ContentSpec | None = None,
    **options: Any,
) -> PromptResult:
    """创建并发送提示框，等待作答。options 与 Prompt 的参数相同。"""
    p = Prompt(**options)
    await p.send(channel, chat_id, base)
    return await p.await_response()
