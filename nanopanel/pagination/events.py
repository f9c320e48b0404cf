"""
钩子栈 - 按注册顺序调用的命名事件监听器列表。

on(name, listener, once=True) 注册的监听器在第一次被调用后移除。
监听器可以是同步函数或协程函数；单个监听器抛出的异常会被记录，
不会影响同一事件的其他监听器，也不会中断分页流程。
"""

from typing import Any, Callable, Iterable

from loguru import logger

from nanopanel.session.registry import call_maybe_async


class EventStack:
    """
    命名事件的监听器表。

    属性:
        names: 允许注册的事件名集合
    """

    def __init__(self, names: Iterable[str], owner: str = "paginator"):
        self.names = tuple(names)
        self.owner = owner
        self._listeners: dict[str, list[tuple[Callable[..., Any], bool]]] = {n: [] for n in self.names}

    def on(self, name: str, listener: Callable[..., Any], once: bool = False) -> None:
        """
        注册监听器。

        异常:
            ValueError: 事件名未知
        """
        if name not in self._listeners:
            raise ValueError(f"Unknown event '{name}', expected one of: {', '.join(self.names)}")
        self._listeners[name].append((listener, once))

    def off(self, name: str, listener: Callable[..., Any]) -> None:
        """移除某个监听器的所有注册。"""
        self._listeners[name] = [(fn, once) for fn, once in self._listeners.get(name, []) if fn is not listener]

    def count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    async def emit(self, name: str, *args: Any) -> None:
        """按注册顺序依次调用监听器（逐个等待）。"""
        entries = list(self._listeners.get(name, []))
        for entry in entries:
            listener, once = entry
            if once and entry in self._listeners[name]:
                self._listeners[name].remove(entry)
            try:
                await call_maybe_async(listener, *args)
            except Exception as e:
                logger.exception(f"[{self.owner}] '{name}' hook {getattr(listener, '__qualname__', listener)} failed: {e}")
