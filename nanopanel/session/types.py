"""
会话类型定义 - Collector 子系统共用的枚举与数据类。

本模块定义了：
- DispatchMode：监听器调度方式（串行 / 并行）
- TimeoutAction：会话结束后的收尾动作
- LifecycleState / Trigger：生命周期状态机的状态与触发器
- DeferBehavior / ListenerOptions / Listener / ListenerResult：监听器相关结构
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class DispatchMode(str, Enum):
    """监听器调度方式。"""
    SEQUENTIAL = "sequential"  # 按注册顺序逐个等待执行
    PARALLEL = "parallel"  # 同时启动，调度方不等待


class TimeoutAction(str, Enum):
    """会话进入 ENDED 后执行的唯一收尾动作。"""
    DISABLE_AFFORDANCES = "disable"  # 重新渲染，所有控件置为不可交互
    DELETE_CONTENT = "delete"  # 删除已渲染内容
    CLEAR_AFFORDANCES = "clear"  # 重新渲染，移除所有控件
    NO_OP = "none"  # 不做任何事


class LifecycleState(str, Enum):
    """会话生命周期状态。ENDED 为终态。"""
    INACTIVE = "inactive"
    ACTIVE = "active"
    ENDED = "ended"


class Trigger(str, Enum):
    """生命周期状态机的触发器。"""
    BIND = "bind"
    EVENT = "event"
    IDLE_ELAPSED = "idle"
    DEADLINE_ELAPSED = "time"
    STOP = "stop"


@dataclass
class DeferBehavior:
    """
    监听器执行前的确认方式。

    属性:
        update: True 表示就地更新原内容（defer update），否则回复一条新消息（defer reply）
        ephemeral: 回复是否仅操作者可见（仅 update=False 时有效）
    """
    update: bool = False
    ephemeral: bool = False


@dataclass
class ListenerOptions:
    """
    监听器选项。

    属性:
        participants: 允许触发此监听器的用户 ID；为 None 时使用会话默认名单，
            为空列表时对所有人开放
        defer: 执行前是否需要确认；True 等价于 DeferBehavior()（回复式确认）
        on_settled: 监听器结束（无论成功或异常）后调用的钩子，参数与监听器相同
    """
    participants: list[Any] | None = None
    defer: bool | DeferBehavior | None = None
    on_settled: Callable[..., Any] | None = None


@dataclass
class Listener:
    """已注册的监听器。key 为 None 表示全局监听器。"""
    callback: Callable[..., Any]
    options: ListenerOptions = field(default_factory=ListenerOptions)
    key: str | None = None

    @property
    def name(self) -> str:
        """监听器的可读名称（用于日志）。"""
        return getattr(self.callback, "__qualname__", None) or repr(self.callback)


@dataclass
class ListenerResult:
    """一次监听器调用的结果：成功，或捕获到的异常。"""
    listener: Listener
    ok: bool
    error: BaseException | None = None
