"""
监听器注册表模块 - 管理 Collector 的全局/按控件监听器，并负责调度执行。

在架构中的位置：
    Collector 持有一个 ListenerRegistry 实例：
    1. on() 注册监听器（全局，或绑定某个控件的 custom_id）
    2. 收到事件时 resolve() 得到本次要执行的监听器：全局在前，按控件在后，
       各自保持注册顺序
    3. dispatch() 按串行/并行方式执行监听器，并捕获每个监听器的异常

设计模式对比（Java 视角）：
    类似于一个按 topic 分组的 ApplicationListener 列表，
    但调用结果被显式封装为 ListenerResult，而不是交给运行时的未处理异常机制。

【异常隔离】
单个监听器抛出的异常只会被记录日志，不会影响其他监听器，也不会结束会话。
"""

import asyncio
import inspect
from typing import Any, Callable, Sequence

from loguru import logger

from nanopanel.session.types import DispatchMode, Listener, ListenerOptions, ListenerResult


async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """调用同步或异步函数，统一返回结果。"""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class ListenerRegistry:
    """
    监听器注册表。

    属性:
        owner: 所属 Collector 的名称，写入日志上下文
        _global: 全局监听器列表（对任意控件触发）
        _keyed: 按控件 ID 分组的监听器 {custom_id: [Listener, ...]}
        _end: 会话结束监听器列表
        _tasks: 并行模式下尚未完成的监听器任务
    """

    def __init__(self, owner: str = "collector"):
        self.owner = owner
        self._global: list[Listener] = []
        self._keyed: dict[str, list[Listener]] = {}
        self._end: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()

    def register(
        self,
        key: str | None,
        callback: Callable[..., Any],
        options: ListenerOptions | None = None,
    ) -> Listener:
        """
        注册一个交互监听器。

        参数:
            key: 控件 custom_id；None 表示全局监听器
            callback: 回调函数（同步或异步），参数为 InteractionEvent
            options: 监听器选项

        返回:
            新注册的 Listener
        """
        listener = Listener(callback=callback, options=options or ListenerOptions(), key=key)
        if key is None:
            self._global.append(listener)
        else:
            self._keyed.setdefault(key, []).append(listener)
        return listener

    def register_end(self, callback: Callable[..., Any], options: ListenerOptions | None = None) -> Listener:
        """注册会话结束监听器，参数为 (collected, reason)。"""
        listener = Listener(callback=callback, options=options or ListenerOptions())
        self._end.append(listener)
        return listener

    def resolve(self, affordance_id: str) -> list[Listener]:
        """获取某个控件触发时要执行的监听器：全局在前，按控件在后。"""
        return [*self._global, *self._keyed.get(affordance_id, [])]

    @property
    def end_listeners(self) -> list[Listener]:
        return list(self._end)

    @property
    def keys(self) -> list[str]:
        """所有注册过监听器的控件 ID（按首次注册顺序）。"""
        return list(self._keyed.keys())

    def __len__(self) -> int:
        return len(self._global) + sum(len(v) for v in self._keyed.values())

    async def invoke(self, listener: Listener, args: Sequence[Any]) -> ListenerResult:
        """
        执行单个监听器，并在结束后执行其 on_settled 钩子。

        异常被捕获并封装到 ListenerResult 中，不会向上传播。
        """
        try:
            await call_maybe_async(listener.callback, *args)
            return ListenerResult(listener=listener, ok=True)
        except Exception as e:
            logger.exception(f"[{self.owner}] Listener {listener.name} failed: {e}")
            return ListenerResult(listener=listener, ok=False, error=e)
        finally:
            if listener.options.on_settled is not None:
                try:
                    await call_maybe_async(listener.options.on_settled, *args)
                except Exception as e:
                    logger.exception(f"[{self.owner}] on_settled hook of {listener.name} failed: {e}")

    async def run_sequential(self, listeners: Sequence[Listener], args: Sequence[Any]) -> list[ListenerResult]:
        """按顺序逐个执行：前一个（含 on_settled）完全结束后才开始下一个。"""
        results = []
        for listener in listeners:
            results.append(await self.invoke(listener, args))
        return results

    def start_parallel(self, listeners: Sequence[Listener], args: Sequence[Any]) -> list[asyncio.Task]:
        """同时启动所有监听器，立即返回任务列表，不等待其完成。"""
        tasks = []
        for listener in listeners:
            task = asyncio.create_task(self.invoke(listener, args))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def dispatch(
        self,
        listeners: Sequence[Listener],
        args: Sequence[Any],
        mode: DispatchMode,
        await_parallel: bool = False,
    ) -> list[ListenerResult]:
        """
        按调度方式执行监听器。

        参数:
            await_parallel: 并行模式下是否等待所有任务结束（用户锁与结束监听器需要）

        返回:
            串行模式或 await_parallel 时返回每个监听器的结果；否则返回空列表（任务在后台运行）
        """
        if mode == DispatchMode.SEQUENTIAL:
            return await self.run_sequential(listeners, args)
        tasks = self.start_parallel(listeners, args)
        if await_parallel and tasks:
            return list(await asyncio.gather(*tasks))
        return []

    async def drain(self) -> list[ListenerResult]:
        """等待所有并行任务结束（测试与关闭时使用）。"""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))
