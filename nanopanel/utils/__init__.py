"""
工具函数模块 - 提供 nanopanel 项目全局通用的辅助函数。

本模块包含：
- ensure_dir：确保目录存在
- get_data_path：获取数据存储路径
- monotonic：单调时钟（秒），供冷却和超时计算使用
"""

from nanopanel.utils.helpers import ensure_dir, get_data_path, monotonic

__all__ = ["ensure_dir", "get_data_path", "monotonic"]
