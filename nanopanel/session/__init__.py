"""
会话模块 - 交互收集器（Collector）及其组成部件。

每个 Collector 对应一条已渲染内容和它的交互事件流：
- gate.py：ParticipantGate 参与者校验 + 提示冷却
- guard.py：ConcurrencyGuard 按用户互斥
- registry.py：ListenerRegistry 监听器注册与调度
- lifecycle.py：CollectorLifecycle 状态机与超时
- collector.py：Collector 组合根

【二开提示】
Paginator 和 Prompt 都是 Collector 的"专用消费者"；
自定义交互面板时，先渲染内容，再 Collector(handle, channel).on(...) 即可。
"""

from nanopanel.session.collector import Collector
from nanopanel.session.gate import ParticipantGate
from nanopanel.session.guard import ConcurrencyGuard
from nanopanel.session.lifecycle import CollectorLifecycle, next_deadline, transition
from nanopanel.session.registry import ListenerRegistry
from nanopanel.session.types import (
    DeferBehavior,
    DispatchMode,
    LifecycleState,
    Listener,
    ListenerOptions,
    ListenerResult,
    TimeoutAction,
    Trigger,
)

__all__ = [
    "Collector",
    "CollectorLifecycle",
    "ConcurrencyGuard",
    "DeferBehavior",
    "DispatchMode",
    "LifecycleState",
    "Listener",
    "ListenerOptions",
    "ListenerRegistry",
    "ListenerResult",
    "ParticipantGate",
    "TimeoutAction",
    "Trigger",
    "next_deadline",
    "transition",
]
