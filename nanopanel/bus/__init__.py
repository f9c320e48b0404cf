"""
交互事件总线模块 - 实现渠道与 Collector 之间的解耦通信。

事件流向：
  用户点击按钮/选择菜单/添加表情 → 渠道(Channel) → InteractionEvent → 事件总线
  → 按 message_id 路由到订阅了该内容的 Subscription → Collector 处理

【Java 开发者类比】
- InteractionBus 类似于按主题（topic）路由的简化版 JMS
- Subscription 类似于一个可关闭的 BlockingQueue 消费端
- InteractionEvent 类似于一个携带"回执"能力的入站 DTO
"""

from nanopanel.bus.events import AckKind, InteractionEvent
from nanopanel.bus.queue import InteractionBus, Subscription

__all__ = ["AckKind", "InteractionBus", "InteractionEvent", "Subscription"]
