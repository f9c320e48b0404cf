"""
工具函数集合 - nanopanel 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir, get_data_path
- 时间工具：monotonic
- 标识：short_id
"""

import time
import uuid
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """获取 nanopanel 数据目录（~/.nanopanel）。自动创建不存在的目录。"""
    return ensure_dir(Path.home() / ".nanopanel")


def monotonic() -> float:
    """单调时钟（秒）。不受系统时间调整影响，用于冷却窗口和超时计算。"""
    return time.monotonic()


def short_id() -> str:
    """生成 8 位短 ID（UUID 前缀），用于日志中标识 Collector 实例。"""
    return uuid.uuid4().hex[:8]
