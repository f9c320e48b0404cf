"""
分页模块 - 章节/页面翻页状态机与分页器。

- pages.py：页面类型、章节结构、下标环绕
- events.py：钩子栈
- state.py：PageState 当前位置与章节管理
- navigation.py：NavigationRenderer 导航控件计算
- paginator.py：Paginator 组合根
"""

from nanopanel.pagination.events import EventStack
from nanopanel.pagination.navigation import NavigationLayout, NavigationRenderer, NavigationType
from nanopanel.pagination.pages import Chapter, ChapterData, Page, PageIndex, normalize_pages, wrap_positive
from nanopanel.pagination.paginator import CHAPTER_SELECT_ID, PAGINATOR_EVENTS, Paginator
from nanopanel.pagination.state import PageState

__all__ = [
    "CHAPTER_SELECT_ID",
    "Chapter",
    "ChapterData",
    "EventStack",
    "NavigationLayout",
    "NavigationRenderer",
    "NavigationType",
    "PAGINATOR_EVENTS",
    "Page",
    "PageIndex",
    "PageState",
    "Paginator",
    "normalize_pages",
    "wrap_positive",
]
