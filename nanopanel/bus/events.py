"""
交互事件类型定义模块 - 定义事件总线中传输的数据结构。

本模块定义了：
- InteractionEvent：一次用户交互（按钮、选择菜单或表情回应）
- AckKind：确认（acknowledge）的两种方式
- Responder：渠道提供的回执函数签名

【设计要点】
每个交互事件必须且只能被"确认"一次（平台通常要求在几秒内响应）。
InteractionEvent 内部记录 acknowledged 状态：第二次 acknowledge() 会被忽略，
确认之后再调用 reply() 会自动降级为 followup。
传输层失败（RenderError）在这里被记录并吞掉，交互链路不会因此中断。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Literal

from loguru import logger

from nanopanel.errors import RenderError
from nanopanel.render.components import ContentSpec

AckKind = Literal["update", "reply"]

# 渠道回执函数：(事件, 动作, 负载, 是否仅自己可见)
# 动作取值：defer_update / defer_reply / update / reply / followup
Responder = Callable[["InteractionEvent", str, "str | ContentSpec | None", bool], Awaitable[None]]


@dataclass
class InteractionEvent:
    """
    交互事件 - 用户对某条已渲染内容的一次操作。

    属性:
        message_id: 被操作内容的 ID（事件总线的路由键）
        actor_id: 操作者的用户 ID
        affordance_id: 被触发控件的 custom_id；表情回应时为表情 ID
        channel: 来源渠道名
        chat_id: 聊天/频道 ID
        kind: "component"（按钮/菜单）或 "reaction"（表情回应）
        values: 选择菜单选中的值列表
        timestamp: 事件时间
        metadata: 渠道特有的附加数据
    """

    message_id: str
    actor_id: str
    affordance_id: str
    channel: str = "memory"
    chat_id: str = ""
    kind: Literal["component", "reaction"] = "component"
    values: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)
    responder: Responder | None = field(default=None, repr=False, compare=False)
    acknowledged: bool = False
    ack_kind: AckKind | None = None

    async def acknowledge(
        self,
        kind: AckKind = "update",
        payload: "str | ContentSpec | None" = None,
        ephemeral: bool = False,
    ) -> bool:
        """
        确认事件。同一事件只会真正确认一次。

        参数:
            kind: "update" 表示就地更新原内容，"reply" 表示回复一条新消息
            payload: 可选的更新/回复内容；为 None 时仅"延迟确认"（defer）
            ephemeral: 回复是否仅操作者可见

        返回:
            True 表示本次调用完成了确认，False 表示已确认过或传输失败
        """
        if self.acknowledged:
            logger.debug(f"Interaction {self.affordance_id} by {self.actor_id} already acknowledged")
            return False

        if kind == "update":
            action = "defer_update" if payload is None else "update"
        else:
            action = "defer_reply" if payload is None else "reply"

        self.acknowledged = True
        self.ack_kind = kind
        return await self._respond(action, payload, ephemeral)

    async def reply(self, payload: "str | ContentSpec", ephemeral: bool = True) -> bool:
        """
        回复操作者。未确认时作为确认（reply），已确认时作为追加消息（followup）。

        参数:
            payload: 回复内容
            ephemeral: 是否仅操作者可见，默认 True
        """
        if self.acknowledged:
            return await self._respond("followup", payload, ephemeral)
        self.acknowledged = True
        self.ack_kind = "reply"
        return await self._respond("reply", payload, ephemeral)

    async def _respond(self, action: str, payload: "str | ContentSpec | None", ephemeral: bool) -> bool:
        if self.responder is None:
            return True
        try:
            await self.responder(self, action, payload, ephemeral)
            return True
        except RenderError as e:
            # 交互可能已过期或内容已被删除，属于预期竞态
            logger.debug(f"Failed to {action} interaction {self.affordance_id}: {e}")
            return False
