"""
页面与章节数据结构。

页面（Page）可以是：
- str：纯文本
- Embed：单个富文本块
- Container：组合内容块
- Attachment：仅图片/附件的页面
- list[Embed]：一组富文本块，整体算作一页

传给 add_chapter 的顶层列表中每个元素都是一页：
    [embed_a, embed_b]    -> 两页
    [[embed_a, embed_b]]  -> 一页（两个 embed 组成一组）
"""

from dataclasses import dataclass, field
from typing import Union

from nanopanel.render.components import Attachment, Container, Embed

Page = Union[str, Embed, Container, Attachment, list[Embed]]


def wrap_positive(n: int, max_index: int) -> int:
    """
    把任意整数环绕到 [0, max_index] 区间内。

    例：wrap_positive(-1, 3) == 3，wrap_positive(4, 3) == 0
    """
    size = max_index + 1
    return ((n % size) + size) % size


def normalize_pages(pages: Page | list[Page]) -> list[Page]:
    """把单个页面或页面列表统一转换为页面列表（不拆开嵌套的分组）。"""
    if isinstance(pages, list):
        return list(pages)
    return [pages]


@dataclass
class PageIndex:
    """当前位置：章节下标与章节内页下标。"""
    chapter: int = 0
    nested: int = 0


@dataclass
class ChapterData:
    """
    章节元数据，同时用作章节选择菜单中的一个选项。

    属性:
        label: 选项显示文本
        value: 选项值，也是章节 ID；为空时自动生成 "ssm_c:<序号>"
        description: 选项描述
        emoji: 选项表情
        default: 是否默认章节；None 表示未指定（第一个章节自动成为默认）
        files: 按页下标对应的附件列表，某页没有附件时对应位置为 None
    """
    label: str
    value: str | None = None
    description: str | None = None
    emoji: str | None = None
    default: bool | None = None
    files: list[Attachment | None] | None = None


@dataclass
class Chapter:
    """一个章节：有序的页面列表及其元数据。"""
    id: str
    pages: list[Page] = field(default_factory=list)
    data: ChapterData = field(default_factory=lambda: ChapterData(label=""))

    @property
    def files(self) -> list[Attachment | None] | None:
        return self.data.files

    @property
    def is_default(self) -> bool:
        return bool(self.data.default)

    def file_for(self, nested: int) -> Attachment | None:
        """获取某页对应的附件。"""
        files = self.data.files or []
        return files[nested] if 0 <= nested < len(files) else None
