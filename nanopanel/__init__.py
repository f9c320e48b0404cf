"""
nanopanel - 轻量级交互面板引擎

模块概述：
    本文件是 nanopanel 包的入口文件（__init__.py），定义了包的元信息。
    nanopanel 为"已渲染的聊天内容"提供短生命周期的交互会话：
    监听按钮/选择/表情回应等交互事件，判断谁有权操作，
    串行或并行地执行回调，并在空闲或绝对超时后自动收尾。

    整个框架的核心功能包括：
    - Collector 交互收集器（参与者校验、用户锁、监听器调度、超时生命周期）
    - Paginator 分页器（章节 × 页码状态机、导航按钮自适应）
    - Prompt 确认/拒绝提示框
    - 渠道抽象（内存渠道、终端渠道）与交互事件总线
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "📑"
