"""
渲染组件定义模块 - 内容与交互控件（affordance）的数据结构。

本模块定义了一次渲染所需的全部数据：
- Embed / Container / Attachment：可展示的内容块
- Button / SelectMenu：用户可以触发的交互控件
- ActionRow：一行交互控件（最多 5 个）
- ContentSpec：一次完整的渲染请求
- ContentHandle：渲染后得到的内容句柄，可再次编辑或删除

【设计要点】
- 所有结构都是普通 dataclass，渠道自行决定如何呈现
- ContentSpec.disabled() / without_affordances() 返回新对象，不修改原对象，
  供超时收尾时"禁用控件"或"清除控件"使用；Container 会被原样保留，
  保证收尾后消息的视觉布局不变
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

MAX_ROW_COMPONENTS = 5


class ButtonStyle(str, Enum):
    """按钮样式（渠道可以忽略不支持的样式）。"""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"


@dataclass
class Button:
    """可点击按钮。custom_id 即事件中的 affordance_id。"""
    custom_id: str
    label: str = ""
    emoji: str | None = None
    style: ButtonStyle = ButtonStyle.SECONDARY
    disabled: bool = False

    @property
    def display(self) -> str:
        """按钮的展示文本：优先 label，其次 emoji。"""
        return self.label or self.emoji or self.custom_id


@dataclass
class SelectOption:
    """下拉选择菜单中的一个选项。"""
    label: str
    value: str
    description: str | None = None
    emoji: str | None = None
    default: bool = False


@dataclass
class SelectMenu:
    """下拉选择菜单。用户选择后事件的 values 字段携带选中的 value。"""
    custom_id: str
    options: list[SelectOption] = field(default_factory=list)
    placeholder: str | None = None
    disabled: bool = False


@dataclass
class ActionRow:
    """一行交互控件。"""
    components: list[Button | SelectMenu] = field(default_factory=list)

    def disabled(self) -> "ActionRow":
        """返回所有控件均被禁用的副本。"""
        return ActionRow(components=[replace(c, disabled=True) for c in self.components])


@dataclass
class Embed:
    """富文本内容块。"""
    title: str | None = None
    description: str | None = None
    fields: list[tuple[str, str]] = field(default_factory=list)
    footer: str | None = None
    color: str | None = None


@dataclass
class Container:
    """
    组合内容块：作为组件（components）发送而非 embed，
    收尾时必须保留在消息中以维持原有外观。
    """
    texts: list[str] = field(default_factory=list)
    accent_color: str | None = None


@dataclass
class Attachment:
    """附件：data 与 url 二选一。"""
    filename: str
    data: bytes | None = None
    url: str | None = None
    description: str | None = None


@dataclass
class ContentSpec:
    """
    一次渲染请求的完整描述。

    属性:
        content: 纯文本内容
        embeds: 富文本块列表
        components: 组件列表（ActionRow 为交互控件行，Container 为展示块）
        files: 附件列表
        flags: 渠道相关的渲染标记（如 "components_v2"）
        metadata: 调用方附加数据，渠道可忽略
    """
    content: str = ""
    embeds: list[Embed] = field(default_factory=list)
    components: list[ActionRow | Container] = field(default_factory=list)
    files: list[Attachment] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def action_rows(self) -> list[ActionRow]:
        """仅返回交互控件行。"""
        return [c for c in self.components if isinstance(c, ActionRow)]

    @property
    def affordance_ids(self) -> list[str]:
        """当前渲染中所有控件的 custom_id（按出现顺序）。"""
        return [c.custom_id for row in self.action_rows for c in row.components]

    def disabled(self) -> "ContentSpec":
        """返回所有交互控件被禁用、其余内容保持不变的副本。"""
        components = [c.disabled() if isinstance(c, ActionRow) else c for c in self.components]
        return replace(self, components=components)

    def without_affordances(self) -> "ContentSpec":
        """返回去掉所有交互控件行、但保留 Container 的副本。"""
        components = [c for c in self.components if not isinstance(c, ActionRow)]
        return replace(self, components=components)


@dataclass
class ContentHandle:
    """
    已渲染内容的句柄。

    content 保存最近一次渲染的 ContentSpec，
    超时收尾时据此重建"禁用控件"或"清除控件"后的版本。

    属性:
        channel: 渲染所在渠道名
        chat_id: 聊天/频道标识
        message_id: 内容在渠道内的唯一 ID（事件路由键）
        content: 最近一次渲染的内容
        reactions: 当前附加在内容上的表情回应
    """
    channel: str
    chat_id: str
    message_id: str
    content: ContentSpec = field(default_factory=ContentSpec)
    reactions: list[str] = field(default_factory=list)
