"""
异常类型定义模块 - nanopanel 所有对外抛出的异常。

错误分类：
- ConfigurationError：构造期配置缺失（如导航按钮缺少 emoji），同步抛出，属于致命错误
- PaginationError / PromptError：调用顺序错误或状态不合法（如未发送就 refresh）
- RenderError / ContentNotFoundError：渲染/传输层的预期竞态（消息已删除等），
  在"尽力而为"的调用点被吞掉，不会中断会话

监听器异常、参与者拒绝、用户锁冲突都不是异常，它们只体现在日志和事件里。
"""


class NanopanelError(Exception):
    """nanopanel 异常基类。"""


class ConfigurationError(NanopanelError):
    """构造时发现必需配置缺失或不合法。"""


class PaginationError(NanopanelError):
    """分页器状态错误（章节不存在、未发送即刷新、按钮超出上限等）。"""


class PromptError(NanopanelError):
    """提示框状态错误（未发送即等待响应等）。"""


class RenderError(NanopanelError):
    """渲染或传输层操作失败。"""


class ContentNotFoundError(RenderError):
    """目标内容已不存在（已被删除或从未发送）。"""
