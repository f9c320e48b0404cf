"""
渠道基类模块 - 定义所有渲染渠道的统一接口。

本模块提供了 BaseChannel 抽象基类，是"策略模式"（Strategy Pattern）的应用。

【核心抽象方法】
- start() / stop()：渠道生命周期
- render()：首次渲染内容，返回 ContentHandle（RenderHook）
- rerender()：编辑已渲染的内容（RenderHook / ContentEdit）
- delete()：删除已渲染的内容（ContentDeletion）
- add_reaction() / clear_reactions()：表情回应
- respond()：交互确认与回复（AcknowledgementPrimitive）

【公共能力】
- _handle_interaction()：构造 InteractionEvent 并发布到总线（模板方法）
"""

from abc import ABC, abstractmethod
from typing import Any, Literal

from nanopanel.bus.events import InteractionEvent
from nanopanel.bus.queue import InteractionBus
from nanopanel.render.components import ContentHandle, ContentSpec


class BaseChannel(ABC):
    """
    渲染渠道抽象基类 - 所有渠道实现的统一契约。

    属性:
        name: 渠道标识名，写入 ContentHandle.channel 和 InteractionEvent.channel
        config: 渠道特定的配置对象
        bus: 交互事件总线，Collector 通过它订阅内容的事件
        _running: 渠道运行状态标志
    """

    name: str = "base"

    def __init__(self, config: Any, bus: InteractionBus):
        """
        初始化渠道。

        参数:
            config: 渠道特定的配置对象（可以为 None）
            bus: 交互事件总线实例
        """
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """启动渠道（长期运行的任务可在此监听平台输入）。"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """停止渠道并清理资源。"""
        pass

    @abstractmethod
    async def render(self, chat_id: str, spec: ContentSpec) -> ContentHandle:
        """
        在指定聊天中渲染新内容。

        参数:
            chat_id: 目标聊天 ID
            spec: 渲染内容

        返回:
            新内容的句柄
        """
        pass

    @abstractmethod
    async def rerender(self, handle: ContentHandle, spec: ContentSpec) -> ContentHandle:
        """
        编辑已渲染的内容。

        异常:
            ContentNotFoundError: 内容已被删除
        """
        pass

    @abstractmethod
    async def delete(self, handle: ContentHandle) -> None:
        """
        删除已渲染的内容。

        异常:
            ContentNotFoundError: 内容已被删除
        """
        pass

    @abstractmethod
    async def add_reaction(self, handle: ContentHandle, emoji: str) -> None:
        """在内容上添加表情回应。"""
        pass

    @abstractmethod
    async def clear_reactions(self, handle: ContentHandle) -> None:
        """移除内容上的所有表情回应。"""
        pass

    @abstractmethod
    async def respond(
        self,
        event: InteractionEvent,
        action: str,
        payload: str | ContentSpec | None,
        ephemeral: bool,
    ) -> None:
        """
        执行交互回执。

        参数:
            event: 被回执的事件
            action: defer_update / defer_reply / update / reply / followup
            payload: 更新或回复的内容
            ephemeral: 回复是否仅操作者可见
        """
        pass

    async def _handle_interaction(
        self,
        message_id: str,
        actor_id: str,
        affordance_id: str,
        chat_id: str = "",
        kind: Literal["component", "reaction"] = "component",
        values: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> InteractionEvent:
        """
        处理来自平台的交互（模板方法）。

        1. 标准化：将平台交互转换为统一的 InteractionEvent，并绑定本渠道的 respond
        2. 发布到总线：由订阅了该内容的 Collector 处理

        返回:
            已发布的事件对象
        """
        event = InteractionEvent(
            message_id=str(message_id),
            actor_id=str(actor_id),
            affordance_id=affordance_id,
            channel=self.name,
            chat_id=str(chat_id),
            kind=kind,
            values=values or [],
            metadata=metadata or {},
            responder=self.respond,
        )
        await self.bus.publish(event)
        return event

    @property
    def is_running(self) -> bool:
        """检查渠道是否正在运行。"""
        return self._running
