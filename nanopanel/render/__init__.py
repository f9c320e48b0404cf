"""
渲染模型模块 - 描述"要发送什么"的协议无关数据结构。

渠道（Channel）负责把 ContentSpec 转成平台原生格式并发送；
Collector / Paginator / Prompt 只和这里的数据结构打交道，
因此核心逻辑不依赖任何具体传输协议。
"""

from nanopanel.render.components import (
    ActionRow,
    Attachment,
    Button,
    ButtonStyle,
    Container,
    ContentHandle,
    ContentSpec,
    Embed,
    SelectMenu,
    SelectOption,
)

__all__ = [
    "ActionRow",
    "Attachment",
    "Button",
    "ButtonStyle",
    "Container",
    "ContentHandle",
    "ContentSpec",
    "Embed",
    "SelectMenu",
    "SelectOption",
]
