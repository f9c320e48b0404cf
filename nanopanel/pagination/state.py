"""
分页状态模块 - 章节列表与当前位置。

PageState 只关心"现在在哪一章哪一页"，不关心渲染：
- set_page() 负责下标环绕、章节切换时重置页下标，并按固定顺序触发钩子
- add_chapter() 负责页面归一化与"恰好一个默认章节"

钩子顺序（set_page）：
    before_chapter_change（仅章节变化时） → before_page_change
    → 修改下标 → chapter_change + page_change（章节变化）
                 或 page_change（仅页变化）
                 或不触发（都没变）
"""

from dataclasses import replace

from loguru import logger

from nanopanel.errors import PaginationError
from nanopanel.pagination.events import EventStack
from nanopanel.pagination.pages import Chapter, ChapterData, Page, PageIndex, normalize_pages, wrap_positive

PAGE_EVENTS = ("before_chapter_change", "chapter_change", "before_page_change", "page_change")


class PageState:
    """
    分页状态。

    属性:
        chapters: 章节列表（顺序即选择菜单顺序）
        index: 当前位置
        current: 当前页面（首次 set_page 之前为 None）
        events: 钩子栈
    """

    def __init__(self, events: EventStack | None = None):
        self.chapters: list[Chapter] = []
        self.index = PageIndex()
        self.current: Page | None = None
        self.events = events or EventStack(PAGE_EVENTS)

    @property
    def current_chapter(self) -> Chapter | None:
        if not self.chapters:
            return None
        return self.chapters[wrap_positive(self.index.chapter, len(self.chapters) - 1)]

    @property
    def current_page(self) -> Page | None:
        return self.current

    @property
    def default_chapter(self) -> Chapter | None:
        return next((c for c in self.chapters if c.is_default), None)

    @property
    def page_count(self) -> int:
        """当前章节的页数。"""
        chapter = self.current_chapter
        return len(chapter.pages) if chapter else 0

    def chapter_index_of(self, value: str) -> int | None:
        """按章节 ID（选项值）查找章节下标，找不到时返回 None。"""
        for i, chapter in enumerate(self.chapters):
            if chapter.id == value:
                return i
        return None

    async def set_page(self, chapter_index: int | None = None, nested_index: int | None = None) -> PageIndex:
        """
        跳转到指定位置。参数缺省时取当前位置。

        参数:
            chapter_index: 目标章节下标（会被环绕）
            nested_index: 目标页下标（章节变化时被忽略，强制为 0；否则会被环绕）

        返回:
            新的位置

        异常:
            PaginationError: 没有任何章节，或目标章节没有页面
        """
        if not self.chapters:
            raise PaginationError("Cannot set page, no chapters have been added")

        old = replace(self.index)
        if chapter_index is None:
            chapter_index = old.chapter
        if nested_index is None:
            nested_index = old.nested

        target_chapter = wrap_positive(chapter_index, len(self.chapters) - 1)
        chapter = self.chapters[target_chapter]
        if not chapter.pages:
            raise PaginationError(f"Chapter at index {target_chapter} has no pages")

        chapter_changed = target_chapter != old.chapter
        target_nested = 0 if chapter_changed else wrap_positive(nested_index, len(chapter.pages) - 1)

        if chapter_changed:
            await self.events.emit("before_chapter_change", target_chapter)
        await self.events.emit("before_page_change", target_nested)

        self.index = PageIndex(target_chapter, target_nested)
        self.current = chapter.pages[target_nested]

        if chapter_changed:
            logger.debug(f"Chapter {old.chapter} -> {target_chapter}")
            await self.events.emit("chapter_change", chapter, self.current, replace(self.index))
            await self.events.emit("page_change", self.current, replace(self.index))
        elif target_nested != old.nested:
            await self.events.emit("page_change", self.current, replace(self.index))

        return replace(self.index)

    async def reset(self) -> PageIndex:
        """回到默认章节的第一页。"""
        default = self.default_chapter
        chapter_index = self.chapters.index(default) if default else 0
        return await self.set_page(chapter_index, 0)

    def add_chapter(self, pages: Page | list[Page], data: ChapterData | None = None) -> Chapter:
        """
        添加章节。

        参数:
            pages: 页面或页面列表（见 pages 模块的归一化规则）
            data: 章节元数据；为空时生成 "Chapter <n>" 标签

        返回:
            新建的章节
        """
        data = replace(data) if data else ChapterData(label=f"Chapter {len(self.chapters) + 1}")

        if data.default is None and not self.chapters:
            data.default = True
        if data.default:
            for chapter in self.chapters:
                chapter.data.default = False
        if not data.value:
            data.value = f"ssm_c:{len(self.chapters)}"

        chapter = Chapter(id=data.value, pages=normalize_pages(pages), data=data)
        self.chapters.append(chapter)
        return chapter

    def splice_chapters(self, index: int, count: int) -> list[Chapter]:
        """从 index 开始移除 count 个章节，返回被移除的章节。"""
        removed = self.chapters[index:index + count]
        del self.chapters[index:index + count]
        return removed

    def hydrate_chapter(self, index: int, pages: Page | list[Page], replace_pages: bool = False) -> Chapter:
        """
        向已有章节追加页面（replace_pages=True 时替换全部页面）。

        异常:
            PaginationError: 章节下标不存在
        """
        if not 0 <= index < len(self.chapters):
            raise PaginationError(f"Could not find chapter at index {index}")

        chapter = self.chapters[index]
        normalized = normalize_pages(pages)
        if replace_pages:
            chapter.pages = normalized
        else:
            chapter.pages.extend(normalized)
        return chapter
