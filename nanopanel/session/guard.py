"""
用户锁模块 - 同一用户的上一次交互处理完之前，拒绝其新的交互。

锁集合只属于单个 Collector，不跨会话共享。
"""


class ConcurrencyGuard:
    """
    按用户 ID 的互斥锁。

    enabled 为 False 时 try_acquire 恒成功、release 为空操作。
    调用方必须在 finally 中 release，保证监听器抛异常时也不会永久锁死。
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._active: set[str] = set()

    def try_acquire(self, actor_id: str) -> bool:
        """尝试为用户加锁。用户已持有锁时返回 False。"""
        if not self.enabled:
            return True
        if actor_id in self._active:
            return False
        self._active.add(actor_id)
        return True

    def release(self, actor_id: str) -> None:
        if self.enabled:
            self._active.discard(actor_id)

    def holds(self, actor_id: str) -> bool:
        return actor_id in self._active

    @property
    def active_actor_ids(self) -> frozenset[str]:
        """当前持有锁的用户。"""
        return frozenset(self._active)
