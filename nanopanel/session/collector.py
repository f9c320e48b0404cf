"""
交互收集器模块 - 把一条已渲染内容与它的交互事件流绑定成一个会话。

Collector 组合了四个部件：
- ParticipantGate：谁能触发（带"无权限"提示冷却）
- ConcurrencyGuard：同一用户的上一个交互处理完之前不接受新的交互（可选）
- ListenerRegistry：全局 / 按控件监听器的注册与调度
- CollectorLifecycle：INACTIVE → ACTIVE → ENDED 状态机与空闲/绝对超时

单个事件的处理流水线（process）：
    1. 用户锁检查（冲突时提示"请稍候"，不执行任何监听器）
    2. 对每个匹配的监听器做一次参与者校验
    3. 若有监听器要求 defer，先做恰好一次对应类型的确认
    4. 按串行/并行方式调度监听器
    5. finally 中释放用户锁

会话结束时：按同样的调度方式执行结束监听器，然后执行唯一一个收尾动作
（禁用控件 / 删除内容 / 清除控件 / 不处理）。

【Java 开发者类比】
- Collector 类似于一个带过滤器链（Filter Chain）的消息监听容器
- on() 的流式注册类似于 Builder 模式，返回 self 便于链式调用
"""

import asyncio
from typing import Any, Callable, Iterable

from loguru import logger

from nanopanel.bus.events import InteractionEvent
from nanopanel.bus.queue import Subscription
from nanopanel.channels.base import BaseChannel
from nanopanel.config.schema import Config, default_config
from nanopanel.errors import ContentNotFoundError, RenderError
from nanopanel.render.components import ContentHandle
from nanopanel.session.gate import ParticipantGate
from nanopanel.session.guard import ConcurrencyGuard
from nanopanel.session.lifecycle import CollectorLifecycle
from nanopanel.session.registry import ListenerRegistry
from nanopanel.session.types import (
    DeferBehavior,
    DispatchMode,
    LifecycleState,
    Listener,
    ListenerOptions,
    TimeoutAction,
)
from nanopanel.utils.helpers import monotonic, short_id


def _timeout_or_none(value: float | None) -> float | None:
    """0 或负数表示不启用该超时。"""
    if value is None or value <= 0:
        return None
    return value


class Collector:
    """
    交互收集器（会话）。

    属性:
        name: 日志中使用的名称
        handle: 绑定的内容句柄（未绑定时为 None）
        channel: 渲染该内容的渠道
        mode: 监听器调度方式
        on_timeout: 会话结束后的收尾动作
        max_events / max_users: 达到上限时以 "limit" 结束会话
    """

    def __init__(
        self,
        handle: ContentHandle | None = None,
        channel: BaseChannel | None = None,
        *,
        participants: Iterable[Any] | None = None,
        idle_timeout: float | None = None,
        absolute_timeout: float | None = None,
        mode: DispatchMode = DispatchMode.PARALLEL,
        user_lock: bool = False,
        on_timeout: TimeoutAction = TimeoutAction.NO_OP,
        max_events: int | None = None,
        max_users: int | None = None,
        not_authorized_message: str | None = None,
        user_lock_message: str | None = None,
        warning_cooldown: float | None = None,
        config: Config | None = None,
        clock: Callable[[], float] = monotonic,
        name: str | None = None,
    ):
        """
        创建收集器。传入 handle 与 channel 时立即绑定并开始计时，
        否则保持 INACTIVE，直到调用 bind()。

        参数:
            handle: 已渲染内容的句柄
            channel: 渲染该内容的渠道（提供事件总线与编辑/删除能力）
            participants: 会话级允许名单，空表示所有人
            idle_timeout: 空闲超时（秒）；None 使用配置默认值，0 表示不启用
            absolute_timeout: 绝对超时（秒）；None 使用配置默认值，0 表示不启用
            mode: 串行或并行调度
            user_lock: 是否启用用户锁
            on_timeout: 结束后的收尾动作
            max_events: 最多接受的事件数
            max_users: 最多参与的不同用户数
            not_authorized_message / user_lock_message / warning_cooldown: 覆盖配置中的对应项
            config: 配置对象；None 使用进程级默认配置
            clock: 冷却计时使用的时钟
            name: 日志名称
        """
        self.config = config or default_config()
        self.name = name or f"collector-{short_id()}"
        self.handle: ContentHandle | None = None
        self.channel: BaseChannel | None = None
        self.mode = mode
        self.on_timeout = on_timeout
        self.max_events = max_events
        self.max_users = max_users
        self.user_lock_message = (
            user_lock_message if user_lock_message is not None else self.config.collector.user_lock_message
        )

        self._gate = ParticipantGate(
            participants,
            not_authorized_message=(
                not_authorized_message
                if not_authorized_message is not None
                else self.config.collector.not_authorized_message
            ),
            cooldown=warning_cooldown if warning_cooldown is not None else self.config.collector.warning_cooldown,
            clock=clock,
        )
        self._guard = ConcurrencyGuard(enabled=user_lock)
        self._registry = ListenerRegistry(owner=self.name)
        self._lifecycle = CollectorLifecycle(
            on_end=self._handle_end,
            idle_timeout=_timeout_or_none(
                idle_timeout if idle_timeout is not None else self.config.timeouts.collector_idle
            ),
            absolute_timeout=_timeout_or_none(
                absolute_timeout if absolute_timeout is not None else self.config.timeouts.collector_timeout
            ),
            name=self.name,
        )
        self._subscription: Subscription | None = None
        self._consumer: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

        if handle is not None and channel is not None:
            self.bind(handle, channel)

    # ------------------------------------------------------------------
    # 注册
    # ------------------------------------------------------------------

    def on(
        self,
        key_or_callback: str | Callable[..., Any],
        callback_or_options: Callable[..., Any] | ListenerOptions | None = None,
        options: ListenerOptions | None = None,
    ) -> "Collector":
        """
        注册交互监听器（可链式调用）。

        用法:
            collector.on(fn, options)            # 任意控件触发
            collector.on("btn_ok", fn, options)  # custom_id 匹配时触发

        异常:
            TypeError: 给出了 custom_id 但第二个参数不是可调用对象
        """
        if callable(key_or_callback):
            self._registry.register(None, key_or_callback, callback_or_options)
            return self

        if not callable(callback_or_options):
            raise TypeError("Second argument must be a callable when an affordance id is provided")
        self._registry.register(str(key_or_callback), callback_or_options, options)
        return self

    def on_end(self, callback: Callable[..., Any], options: ListenerOptions | None = None) -> "Collector":
        """注册会话结束监听器，回调参数为 (collected, reason)。"""
        self._registry.register_end(callback, options)
        return self

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def bind(self, handle: ContentHandle, channel: BaseChannel) -> "Collector":
        """
        绑定内容句柄并开始收集：订阅该内容的事件并启动计时。
        已绑定时只更新句柄（内容被重新渲染后句柄可能变化）。
        """
        if self.handle is not None:
            self.handle = handle
            return self

        self.handle = handle
        self.channel = channel
        self._lifecycle.activate()
        self._subscription = channel.bus.subscribe(handle.message_id)
        self._consumer = asyncio.create_task(self._consume(self._subscription))
        logger.info(f"[{self.name}] collecting interactions on {handle.channel}:{handle.message_id}")
        return self

    def stop(self, reason: str = "manual") -> None:
        """手动结束会话。不等待收尾完成；已结束时无效果。"""
        self._lifecycle.stop(reason)

    def reset_timer(self) -> None:
        """重置空闲计时。"""
        self._lifecycle.reset_timer()

    async def wait_ended(self) -> str | None:
        """等待会话结束并完成收尾，返回结束原因。"""
        return await self._lifecycle.wait_ended()

    async def drain(self) -> None:
        """等待所有进行中的事件处理与并行监听器结束。"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._registry.drain()

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def is_active(self) -> bool:
        return self._lifecycle.is_active

    @property
    def reason(self) -> str | None:
        return self._lifecycle.reason

    @property
    def collected(self) -> list[InteractionEvent]:
        return list(self._lifecycle.collected)

    @property
    def participants(self) -> list[str]:
        return list(self._gate.participants)

    @property
    def gate(self) -> ParticipantGate:
        return self._gate

    @property
    def guard(self) -> ConcurrencyGuard:
        return self._guard

    @property
    def registry(self) -> ListenerRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # 事件处理
    # ------------------------------------------------------------------

    async def _consume(self, subscription: Subscription) -> None:
        async for event in subscription:
            self.accept(event)

    def accept(self, event: InteractionEvent) -> asyncio.Task | None:
        """
        接受一个事件：同步记录并重置空闲计时，然后在后台处理。

        返回:
            处理该事件的任务；会话未处于 ACTIVE 时返回 None
        """
        if not self._lifecycle.record(event):
            logger.debug(f"[{self.name}] ignoring {event.affordance_id}, collector is {self.state.value}")
            return None

        task = asyncio.create_task(self.process(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        collected = self._lifecycle.collected
        if self.max_events and len(collected) >= self.max_events:
            self.stop("limit")
        elif self.max_users and len({e.actor_id for e in collected}) >= self.max_users:
            self.stop("limit")
        return task

    async def process(self, event: InteractionEvent) -> None:
        """单个事件的完整处理流水线（锁 → 校验 → 确认 → 调度 → 释放锁）。"""
        if not self._guard.try_acquire(event.actor_id):
            logger.debug(f"[{self.name}] {event.actor_id} is locked, rejecting {event.affordance_id}")
            await event.reply(self.user_lock_message, ephemeral=True)
            return

        try:
            allowed: list[Listener] = []
            for listener in self._registry.resolve(event.affordance_id):
                if await self._gate.check(event, listener.options.participants):
                    allowed.append(listener)

            if not allowed:
                return

            await self._acknowledge(event, allowed)

            # 启用用户锁时，锁必须覆盖到所有监听器结束
            await self._registry.dispatch(allowed, (event,), self.mode, await_parallel=self._guard.enabled)
        finally:
            self._guard.release(event.actor_id)

    async def _acknowledge(self, event: InteractionEvent, listeners: list[Listener]) -> None:
        defer = next((listener.options.defer for listener in listeners if listener.options.defer), None)
        if not defer:
            return
        if isinstance(defer, DeferBehavior):
            if defer.update:
                await event.acknowledge("update")
            else:
                await event.acknowledge("reply", ephemeral=defer.ephemeral)
        else:
            await event.acknowledge("reply")

    # ------------------------------------------------------------------
    # 收尾
    # ------------------------------------------------------------------

    async def _handle_end(self, collected: list[InteractionEvent], reason: str) -> None:
        logger.info(f"[{self.name}] ended ({reason}) after {len(collected)} interaction(s)")
        if self._subscription is not None:
            self._subscription.close()

        await self._registry.dispatch(
            self._registry.end_listeners, (collected, reason), self.mode, await_parallel=True
        )
        await self._apply_timeout_action()

    async def _apply_timeout_action(self) -> None:
        if self.handle is None or self.channel is None:
            return

        if self.on_timeout == TimeoutAction.DELETE_CONTENT:
            try:
                await self.channel.delete(self.handle)
            except Exception as e:
                logger.debug(f"[{self.name}] delete skipped: {e}")
            return

        if self.on_timeout == TimeoutAction.DISABLE_AFFORDANCES:
            spec = self.handle.content.disabled()
        elif self.on_timeout == TimeoutAction.CLEAR_AFFORDANCES:
            spec = self.handle.content.without_affordances()
        else:
            return

        try:
            self.handle = await self.channel.rerender(self.handle, spec)
        except ContentNotFoundError:
            pass
        except RenderError as e:
            logger.warning(f"[{self.name}] failed to apply {self.on_timeout.value} on end: {e}")
