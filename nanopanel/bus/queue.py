"""
异步事件路由模块 - 事件总线的核心实现（EventSource）。

本模块实现了 InteractionBus 类：渠道把收到的交互事件 publish 到总线，
总线按 message_id 把事件投递给订阅了该内容的所有 Subscription。

入站流程（用户 → Collector）：
  渠道 → publish() → 按 message_id 查找订阅 → Subscription 队列 → Collector 消费

【Java 开发者类比】
- asyncio.Queue 类似于 Java 的 LinkedBlockingQueue
- subscribe()/close() 类似于 JMS 的 createConsumer()/close()
- 每个 Subscription 拥有独立队列，慢消费者不会阻塞其他订阅者
"""

import asyncio

from loguru import logger

from nanopanel.bus.events import InteractionEvent

# 队列关闭哨兵
_CLOSED = object()


class Subscription:
    """
    单个内容的事件订阅（可取消）。

    支持 `async for event in subscription` 迭代，close() 后迭代自然结束。

    属性:
        message_id: 订阅的内容 ID
        closed: 是否已关闭
    """

    def __init__(self, bus: "InteractionBus", message_id: str):
        self.message_id = message_id
        self.closed = False
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue()

    def put_nowait(self, event: InteractionEvent) -> None:
        """投递一个事件（由总线调用）。已关闭的订阅直接丢弃。"""
        if not self.closed:
            self._queue.put_nowait(event)

    async def get(self) -> InteractionEvent | None:
        """等待下一个事件。订阅关闭后返回 None。"""
        if self.closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        """关闭订阅：从总线注销，并唤醒正在等待的消费者。"""
        if self.closed:
            return
        self.closed = True
        self._bus.unsubscribe(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> InteractionEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class InteractionBus:
    """
    交互事件总线 - 解耦渠道与 Collector 的通信中枢。

    属性:
        _subscriptions: 订阅字典 {message_id: [Subscription, ...]}
    """

    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, message_id: str) -> Subscription:
        """
        订阅指定内容的交互事件。

        参数:
            message_id: 内容 ID（ContentHandle.message_id）

        返回:
            新建的 Subscription
        """
        sub = Subscription(self, message_id)
        self._subscriptions.setdefault(message_id, []).append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """注销订阅。不存在时静默忽略。"""
        subs = self._subscriptions.get(sub.message_id)
        if not subs:
            return
        if sub in subs:
            subs.remove(sub)
        if not subs:
            del self._subscriptions[sub.message_id]

    async def publish(self, event: InteractionEvent) -> int:
        """
        发布交互事件，投递给该内容的所有订阅者。

        参数:
            event: 交互事件

        返回:
            实际投递到的订阅数量（0 表示无人订阅，事件被丢弃）
        """
        subs = list(self._subscriptions.get(event.message_id, []))
        if not subs:
            logger.debug(f"No subscription for message {event.message_id}, dropping {event.affordance_id}")
            return 0
        for sub in subs:
            sub.put_nowait(event)
        return len(subs)

    def subscription_count(self, message_id: str | None = None) -> int:
        """获取订阅数量；指定 message_id 时只统计该内容。"""
        if message_id is not None:
            return len(self._subscriptions.get(message_id, []))
        return sum(len(s) for s in self._subscriptions.values())
