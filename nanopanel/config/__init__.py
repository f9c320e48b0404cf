"""
配置模块 (config)
================
本模块是 nanopanel 的配置系统入口，负责：
1. 定义配置数据模型（schema.py）：使用 Pydantic 定义所有配置项的结构和默认值
2. 加载/保存配置文件（loader.py）：从 JSON 文件读取配置，支持 camelCase ↔ snake_case 自动转换

核心组件（Collector、Paginator、Prompt）只接收已解析完毕的扁平参数，
嵌套配置的合并统一在这里完成。
"""

from nanopanel.config.loader import load_config, get_config_path
from nanopanel.config.schema import Config, default_config

__all__ = ["Config", "default_config", "load_config", "get_config_path"]
