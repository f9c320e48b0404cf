"""
会话生命周期模块 - INACTIVE → ACTIVE → ENDED 有限状态机与超时计时。

状态机：
    INACTIVE --BIND--> ACTIVE
    ACTIVE --EVENT--> ACTIVE            （重置空闲计时）
    ACTIVE --IDLE_ELAPSED--> ENDED      （reason = "idle"）
    ACTIVE --DEADLINE_ELAPSED--> ENDED  （reason = "time"）
    ACTIVE --STOP--> ENDED              （reason = 调用方给出，默认 "manual"）
    ENDED 为终态，其余组合不改变状态。

【计时器设计】
状态转换与"下一次到期"的计算都是纯函数（transition / next_deadline），
CollectorLifecycle 只负责在事件循环上挂一个 call_at 回调：
每次接受事件或重置计时都会按 next_deadline 重新挂载，
空闲计时与绝对超时谁先到期就以谁为准。
计时器是调度回调而不是阻塞等待，不占用任何任务。

【Java 开发者类比】
- call_at 类似于 ScheduledExecutorService.schedule()，返回可取消的 ScheduledFuture
- stop() 只是"发出结束信号"，收尾工作在后台任务中完成，类似于 CompletableFuture.runAsync()
"""

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from nanopanel.session.types import LifecycleState, Trigger

_TRANSITIONS: dict[tuple[LifecycleState, Trigger], LifecycleState] = {
    (LifecycleState.INACTIVE, Trigger.BIND): LifecycleState.ACTIVE,
    (LifecycleState.ACTIVE, Trigger.EVENT): LifecycleState.ACTIVE,
    (LifecycleState.ACTIVE, Trigger.IDLE_ELAPSED): LifecycleState.ENDED,
    (LifecycleState.ACTIVE, Trigger.DEADLINE_ELAPSED): LifecycleState.ENDED,
    (LifecycleState.ACTIVE, Trigger.STOP): LifecycleState.ENDED,
}


def transition(state: LifecycleState, trigger: Trigger) -> LifecycleState:
    """纯状态转换：未定义的组合保持原状态。"""
    return _TRANSITIONS.get((state, trigger), state)


def next_deadline(
    last_activity: float,
    started_at: float,
    idle_timeout: float | None,
    absolute_timeout: float | None,
) -> tuple[float | None, Trigger | None]:
    """
    计算下一次到期的时间点及对应触发器。

    参数:
        last_activity: 最近一次接受事件（或激活）的时间
        started_at: 激活时间
        idle_timeout: 空闲超时（秒），None 表示不限
        absolute_timeout: 绝对超时（秒），None 表示不限

    返回:
        (到期时间, 触发器)；两个超时都未设置时返回 (None, None)。
        同时到期时以绝对超时为准。
    """
    idle_at = last_activity + idle_timeout if idle_timeout else None
    deadline_at = started_at + absolute_timeout if absolute_timeout else None

    if idle_at is None and deadline_at is None:
        return None, None
    if idle_at is None:
        return deadline_at, Trigger.DEADLINE_ELAPSED
    if deadline_at is None or idle_at < deadline_at:
        return idle_at, Trigger.IDLE_ELAPSED
    return deadline_at, Trigger.DEADLINE_ELAPSED


class CollectorLifecycle:
    """
    会话生命周期。

    属性:
        state: 当前状态
        reason: 结束原因（仅 ENDED 时有值）
        collected: 会话期间接受的全部事件
        idle_timeout / absolute_timeout: 超时设置（秒，None 表示不限）
    """

    def __init__(
        self,
        on_end: Callable[[list[Any], str], Awaitable[None]],
        idle_timeout: float | None = None,
        absolute_timeout: float | None = None,
        name: str = "collector",
    ):
        """
        参数:
            on_end: 进入 ENDED 后在后台执行的收尾协程，参数为 (collected, reason)
            idle_timeout: 空闲超时（秒）
            absolute_timeout: 绝对超时（秒）
            name: 日志中使用的名称
        """
        self.state = LifecycleState.INACTIVE
        self.reason: str | None = None
        self.collected: list[Any] = []
        self.idle_timeout = idle_timeout
        self.absolute_timeout = absolute_timeout
        self.name = name
        self._on_end = on_end
        self._started_at = 0.0
        self._last_activity = 0.0
        self._timer: asyncio.TimerHandle | None = None
        self._end_task: asyncio.Task | None = None
        self._ended = asyncio.Event()

    @property
    def is_active(self) -> bool:
        return self.state == LifecycleState.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.state == LifecycleState.ENDED

    def activate(self) -> None:
        """INACTIVE → ACTIVE，开始计时。必须在运行中的事件循环内调用。"""
        new_state = transition(self.state, Trigger.BIND)
        if new_state == self.state:
            return
        self.state = new_state
        now = asyncio.get_running_loop().time()
        self._started_at = now
        self._last_activity = now
        self._arm()
        logger.debug(f"[{self.name}] active (idle={self.idle_timeout}, timeout={self.absolute_timeout})")

    def record(self, event: Any) -> bool:
        """
        接受一个事件：记录并同步重置空闲计时。

        返回:
            False 表示会话不处于 ACTIVE，事件被忽略
        """
        if not self.is_active:
            return False
        self.collected.append(event)
        self.reset_timer()
        return True

    def reset_timer(self) -> None:
        """重置空闲计时（绝对超时不受影响）。"""
        if not self.is_active:
            return
        self._last_activity = asyncio.get_running_loop().time()
        self._arm()

    def stop(self, reason: str = "manual") -> None:
        """手动结束会话。不等待收尾完成；ENDED 后再调用无效果。"""
        self._finish(Trigger.STOP, reason)

    async def wait_ended(self) -> str | None:
        """等待收尾完成，返回结束原因。"""
        await self._ended.wait()
        return self.reason

    def _arm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        when, trigger = next_deadline(
            self._last_activity, self._started_at, self.idle_timeout, self.absolute_timeout
        )
        if when is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_at(when, self._on_timer, trigger)

    def _on_timer(self, trigger: Trigger) -> None:
        self._timer = None
        self._finish(trigger, trigger.value)

    def _finish(self, trigger: Trigger, reason: str) -> None:
        new_state = transition(self.state, trigger)
        if new_state != LifecycleState.ENDED or self.is_ended:
            return
        self.state = new_state
        self.reason = reason
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.debug(f"[{self.name}] ended: {reason}")
        self._end_task = asyncio.get_running_loop().create_task(self._run_end(reason))

    async def _run_end(self, reason: str) -> None:
        try:
            await self._on_end(list(self.collected), reason)
        except Exception as e:
            logger.exception(f"[{self.name}] end handling failed: {e}")
        finally:
            self._ended.set()
