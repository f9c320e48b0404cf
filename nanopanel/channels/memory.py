"""
内存渠道实现模块 - 不依赖任何外部平台的进程内渠道。

MemoryChannel 把所有渲染结果保存在内存字典里，并记录每一次
渲染、编辑、删除、表情回应和交互回执，适用于：
- 单元测试与集成测试（断言"删除只发生了一次"之类的行为）
- 把 nanopanel 嵌入到其他程序中，由宿主自行读取渲染结果

click() / react() 模拟用户操作：构造事件并发布到总线。
"""

import itertools
from dataclasses import dataclass
from typing import Any

from loguru import logger

from nanopanel.bus.events import InteractionEvent
from nanopanel.bus.queue import InteractionBus
from nanopanel.channels.base import BaseChannel
from nanopanel.errors import ContentNotFoundError
from nanopanel.render.components import ContentHandle, ContentSpec


@dataclass
class RecordedResponse:
    """一次交互回执的记录。"""
    message_id: str
    actor_id: str
    affordance_id: str
    action: str
    payload: str | ContentSpec | None
    ephemeral: bool


class MemoryChannel(BaseChannel):
    """
    进程内渠道。

    属性:
        messages: 当前存在的内容 {message_id: ContentSpec}
        reactions: 当前内容上的表情回应 {message_id: [emoji, ...]}
        history: 操作流水 [(操作, message_id)]，操作为 render/edit/delete
        responses: 所有交互回执记录
    """

    name = "memory"

    def __init__(self, config: Any = None, bus: InteractionBus | None = None):
        super().__init__(config, bus or InteractionBus())
        self.messages: dict[str, ContentSpec] = {}
        self.reactions: dict[str, list[str]] = {}
        self.history: list[tuple[str, str]] = []
        self.responses: list[RecordedResponse] = []
        self._ids = itertools.count(1)

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def render(self, chat_id: str, spec: ContentSpec) -> ContentHandle:
        message_id = f"m{next(self._ids)}"
        self.messages[message_id] = spec
        self.reactions[message_id] = []
        self.history.append(("render", message_id))
        logger.debug(f"Rendered {message_id} in {chat_id}")
        return ContentHandle(channel=self.name, chat_id=str(chat_id), message_id=message_id, content=spec)

    async def rerender(self, handle: ContentHandle, spec: ContentSpec) -> ContentHandle:
        if handle.message_id not in self.messages:
            raise ContentNotFoundError(f"Unknown message {handle.message_id}")
        self.messages[handle.message_id] = spec
        self.history.append(("edit", handle.message_id))
        handle.content = spec
        return handle

    async def delete(self, handle: ContentHandle) -> None:
        if handle.message_id not in self.messages:
            raise ContentNotFoundError(f"Unknown message {handle.message_id}")
        del self.messages[handle.message_id]
        self.reactions.pop(handle.message_id, None)
        self.history.append(("delete", handle.message_id))

    async def add_reaction(self, handle: ContentHandle, emoji: str) -> None:
        if handle.message_id not in self.messages:
            raise ContentNotFoundError(f"Unknown message {handle.message_id}")
        self.reactions[handle.message_id].append(emoji)
        handle.reactions.append(emoji)

    async def clear_reactions(self, handle: ContentHandle) -> None:
        if handle.message_id not in self.messages:
            raise ContentNotFoundError(f"Unknown message {handle.message_id}")
        self.reactions[handle.message_id] = []
        handle.reactions.clear()

    async def respond(
        self,
        event: InteractionEvent,
        action: str,
        payload: str | ContentSpec | None,
        ephemeral: bool,
    ) -> None:
        self.responses.append(RecordedResponse(
            message_id=event.message_id,
            actor_id=event.actor_id,
            affordance_id=event.affordance_id,
            action=action,
            payload=payload,
            ephemeral=ephemeral,
        ))
        if action == "update" and isinstance(payload, ContentSpec) and event.message_id in self.messages:
            self.messages[event.message_id] = payload
            self.history.append(("edit", event.message_id))

    async def click(
        self,
        handle: ContentHandle,
        actor_id: str,
        affordance_id: str,
        values: list[str] | None = None,
    ) -> InteractionEvent:
        """模拟用户点击按钮或在选择菜单中选值。"""
        return await self._handle_interaction(
            message_id=handle.message_id,
            actor_id=actor_id,
            affordance_id=affordance_id,
            chat_id=handle.chat_id,
            values=values,
        )

    async def react(self, handle: ContentHandle, actor_id: str, emoji: str) -> InteractionEvent:
        """模拟用户添加表情回应。"""
        return await self._handle_interaction(
            message_id=handle.message_id,
            actor_id=actor_id,
            affordance_id=emoji,
            chat_id=handle.chat_id,
            kind="reaction",
        )

    def count(self, op: str, message_id: str | None = None) -> int:
        """统计某种操作（render/edit/delete）发生的次数。"""
        return sum(1 for o, m in self.history if o == op and (message_id is None or m == message_id))

    def responses_for(self, actor_id: str, action: str | None = None) -> list[RecordedResponse]:
        """获取某个用户收到的回执（可按动作过滤）。"""
        return [r for r in self.responses if r.actor_id == actor_id and (action is None or r.action == action)]
