"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 nanopanel 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── timeouts      - 各类会话的空闲/绝对超时（秒）
├── collector     - Collector 的提示文案与警告冷却
├── paginator     - 分页器阈值、导航按钮定义与提示文案
├── prompt        - 确认提示框的默认标题与按钮文案
└── console       - 终端渠道的操作者 ID 与显示选项

对于 Java 开发者：
- Pydantic 的 BaseModel 类似于 Java 的 POJO/Record，但自带字段验证和默认值
- BaseSettings 类似于 Spring 的 @ConfigurationProperties，额外支持从环境变量读取配置
"""

from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TimeoutsConfig(BaseModel):
    """各类交互会话的超时设置（单位：秒）。"""
    collector_idle: float = 60.0  # Collector 默认空闲超时
    collector_timeout: float = 60.0  # Collector 默认绝对超时
    pagination: float = 60.0  # 分页器空闲超时
    prompt: float = 30.0  # 提示框等待响应的超时


class CollectorConfig(BaseModel):
    """Collector 面向用户的提示文案。"""
    not_authorized_message: str = "You are not allowed to use this."
    user_lock_message: str = "Please wait until your current action is finished."
    warning_cooldown: float = 5.0  # 同一用户两次"无权限"提示的最小间隔（秒）


class EmojiConfig(BaseModel):
    """导航按钮对应的表情（表情回应模式下作为 reaction 使用）。"""
    name: str = ""
    id: str = ""
    animated: bool = False


class NavButtonConfig(BaseModel):
    """单个导航按钮：有 label 时显示文字，否则显示 emoji。"""
    label: str = ""
    emoji: EmojiConfig = Field(default_factory=EmojiConfig)


def _default_nav_buttons() -> dict[str, NavButtonConfig]:
    return {
        "first": NavButtonConfig(label="◀◀", emoji=EmojiConfig(name="⏮️", id="⏮️")),
        "back": NavButtonConfig(label="◀", emoji=EmojiConfig(name="◀️", id="◀️")),
        "jump": NavButtonConfig(label="📄", emoji=EmojiConfig(name="📄", id="📄")),
        "next": NavButtonConfig(label="▶", emoji=EmojiConfig(name="▶️", id="▶️")),
        "last": NavButtonConfig(label="▶▶", emoji=EmojiConfig(name="⏭️", id="⏭️")),
    }


class PaginatorConfig(BaseModel):
    """
    分页器配置。

    jumpable_threshold / long_threshold 是"页数阈值"：
    章节页数达到 jumpable_threshold 时才可能出现 jump 按钮，
    达到 long_threshold 时才可能出现 first/last 按钮。
    """
    not_authorized_message: str = "You are not allowed to use this."
    jump_message: str = "Jump not implemented yet."
    jumpable_threshold: int = 5
    long_threshold: int = 4
    buttons: dict[str, NavButtonConfig] = Field(default_factory=_default_nav_buttons)


class ConsoleConfig(BaseModel):
    """终端渠道配置。终端里只有一个操作者，actor_id 即其用户 ID。"""
    actor_id: str = "console"
    show_ids: bool = False  # 是否在按钮旁显示 custom_id


class PromptConfig(BaseModel):
    """确认提示框的默认文案。"""
    default_title: str = "Please Confirm"
    default_description: str = "Are you sure you want to continue?"
    confirm_label: str = "Confirm"
    reject_label: str = "Cancel"


def _deep_update(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """递归合并字典：overrides 中的嵌套字典逐层覆盖 base，其余值直接替换。"""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config(BaseSettings):
    """
    nanopanel 根配置类。

    继承自 BaseSettings，因此除了 config.json 外，
    还可以通过 NANOPANEL_ 前缀的环境变量覆盖任意配置项，
    例如 NANOPANEL_TIMEOUTS__PAGINATION=120。
    """
    dev_mode: bool = False
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    paginator: PaginatorConfig = Field(default_factory=PaginatorConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)

    def merged(self, overrides: dict[str, Any] | None = None) -> "Config":
        """
        返回一份深度合并了 overrides 的新配置（原配置不变）。

        参数:
            overrides: 部分配置字典（snake_case 键名），如 {"collector": {"warning_cooldown": 1}}

        返回:
            合并后重新校验的 Config 实例
        """
        if not overrides:
            return self
        return Config.model_validate(_deep_update(self.model_dump(), overrides))

    # Pydantic Settings 配置：支持 NANOPANEL_ 前缀的环境变量，嵌套用 __ 分隔
    model_config = SettingsConfigDict(
        env_prefix="NANOPANEL_",
        env_nested_delimiter="__",
    )


_default: Config | None = None


def default_config() -> Config:
    """获取进程级默认配置（懒加载，首次访问时读取环境变量）。"""
    global _default
    if _default is None:
        _default = Config()
    return _default
