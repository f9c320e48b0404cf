"""
参与者校验模块 - 决定谁有权触发交互，并对"无权限"提示做防刷屏冷却。

【规则】
- 允许名单为空 → 对所有人开放
- 否则按用户 ID 直接匹配
- 被拒绝时：距上次提示已超过冷却窗口 → 发送"无权限"提示并记录时间；
  否则静默确认事件，不再重复提示（防刷屏）

冷却记录（WarningCooldown）只在拒绝路径上写入，随 Collector 一起销毁，不做主动清理。
"""

from typing import Any, Callable, Iterable

from loguru import logger

from nanopanel.bus.events import InteractionEvent
from nanopanel.utils.helpers import monotonic


def resolve_actor_id(actor: Any) -> str:
    """
    把"用户可解析对象"统一为字符串 ID。

    支持字符串、整数，以及带 id 属性的对象（如平台的 User 对象）。
    """
    if isinstance(actor, str):
        return actor
    actor_id = getattr(actor, "id", None)
    if actor_id is not None:
        return str(actor_id)
    return str(actor)


def resolve_actor_ids(actors: Iterable[Any] | None) -> list[str]:
    """批量解析用户 ID。None 返回空列表。"""
    return [resolve_actor_id(a) for a in actors or []]


class ParticipantGate:
    """
    参与者校验器。

    属性:
        participants: 会话级默认允许名单（已解析为字符串 ID）
        not_authorized_message: 拒绝提示文案；为空时只静默确认
        cooldown: 同一用户两次拒绝提示之间的最小间隔（秒）
        _cooldowns: 用户 ID → 上次提示时间
    """

    def __init__(
        self,
        participants: Iterable[Any] | None = None,
        not_authorized_message: str = "",
        cooldown: float = 5.0,
        clock: Callable[[], float] = monotonic,
    ):
        self.participants = resolve_actor_ids(participants)
        self.not_authorized_message = not_authorized_message
        self.cooldown = cooldown
        self._clock = clock
        self._cooldowns: dict[str, float] = {}

    @staticmethod
    def is_authorized(actor_id: str, allowed_ids: Iterable[Any]) -> bool:
        """纯判断：allowed_ids 为空时恒为 True，否则做成员检查。"""
        allowed = resolve_actor_ids(allowed_ids)
        if not allowed:
            return True
        return str(actor_id) in allowed

    def allowed_for(self, participants: Iterable[Any] | None) -> list[str]:
        """监听器自带名单时使用监听器名单，否则使用会话默认名单。"""
        if participants is None:
            return self.participants
        return resolve_actor_ids(participants)

    def should_warn(self, actor_id: str) -> bool:
        """判断本次拒绝是否需要提示；需要时同时记录提示时间。"""
        now = self._clock()
        last = self._cooldowns.get(actor_id)
        if last is not None and now - last < self.cooldown:
            return False
        self._cooldowns[actor_id] = now
        return True

    async def check(self, event: InteractionEvent, participants: Iterable[Any] | None = None) -> bool:
        """
        校验事件的操作者，并在拒绝时处理提示/静默确认。

        参数:
            event: 交互事件
            participants: 监听器级名单（None 表示使用会话默认名单）

        返回:
            True 表示允许执行
        """
        if self.is_authorized(event.actor_id, self.allowed_for(participants)):
            return True

        if self.should_warn(event.actor_id):
            logger.debug(f"Actor {event.actor_id} is not a participant for {event.affordance_id}")
            if self.not_authorized_message:
                await event.reply(self.not_authorized_message, ephemeral=True)
            else:
                await event.acknowledge("update")
        else:
            # 刷屏中，静默确认
            await event.acknowledge("update")
        return False
