"""
分页器模块 - 在一条内容上按章节/页面翻页。

Paginator 组合了三个部件：
- PageState：当前章节与页面
- NavigationRenderer：根据页数决定显示哪些导航控件
- Collector：接收导航交互，空闲超时后执行收尾动作

控件 ID：
    btn_first / btn_back / btn_jump / btn_next / btn_last  导航按钮
    ssm_chapterSelect                                      章节选择菜单（多于一个章节时显示）
表情回应模式下，导航按钮换成对应的表情，事件按表情 ID 映射回导航名称。

【jump 说明】
jump 按钮只触发 "jump" 钩子并回复 jump_message，不改变页面，
需要"跳页"的应用在 jump 钩子中自行实现。

用法示例：
    paginator = Paginator(navigation_type=NavigationType.LONG_JUMP, dynamic=True)
    paginator.add_chapter([embed1, embed2], ChapterData(label="Overview"))
    paginator.on("page_change", lambda page, index: ...)
    await paginator.send(channel, chat_id)
"""

from dataclasses import replace
from typing import Any, Callable, Iterable

from loguru import logger

from nanopanel.bus.events import InteractionEvent
from nanopanel.channels.base import BaseChannel
from nanopanel.config.schema import Config, default_config
from nanopanel.errors import ContentNotFoundError, PaginationError, RenderError
from nanopanel.pagination.events import EventStack
from nanopanel.pagination.navigation import (
    NAV_NAMES,
    NAV_SETS,
    NavigationLayout,
    NavigationRenderer,
    NavigationType,
    nav_custom_id,
)
from nanopanel.pagination.pages import Chapter, ChapterData, Page, PageIndex
from nanopanel.pagination.state import PAGE_EVENTS, PageState
from nanopanel.render.components import (
    MAX_ROW_COMPONENTS,
    ActionRow,
    Attachment,
    Button,
    Container,
    ContentHandle,
    ContentSpec,
    Embed,
    SelectMenu,
    SelectOption,
)
from nanopanel.session.collector import Collector
from nanopanel.session.types import DeferBehavior, DispatchMode, LifecycleState, ListenerOptions, TimeoutAction
from nanopanel.utils.helpers import short_id

CHAPTER_SELECT_ID = "ssm_chapterSelect"

PAGINATOR_EVENTS = PAGE_EVENTS + NAV_NAMES + ("collect", "react", "pre_timeout", "post_timeout")


class Paginator:
    """
    分页器。

    属性:
        state: 分页状态
        navigation: 导航渲染器
        events: 钩子栈（页面钩子与分页器钩子共用）
        handle: 已发送内容的句柄（send 之前为 None）
        channel: 发送所用渠道
        on_timeout: 空闲超时后的收尾动作，默认清除控件
    """

    def __init__(
        self,
        *,
        navigation_type: NavigationType = NavigationType.SHORT,
        participants: Iterable[Any] | None = None,
        pages: list[Page] | None = None,
        use_reactions: bool = False,
        dynamic: bool = False,
        timeout: float | None = None,
        on_timeout: TimeoutAction = TimeoutAction.CLEAR_AFFORDANCES,
        jumpable_threshold: int | None = None,
        long_threshold: int | None = None,
        config: Config | None = None,
        name: str | None = None,
    ):
        """
        参数:
            navigation_type: 导航类型
            participants: 允许翻页的用户，空表示所有人
            pages: 快捷方式：直接以这些页面创建一个 "Default" 章节
            use_reactions: 用表情回应代替按钮
            dynamic: 按每章页数动态选择导航类型
            timeout: 空闲超时（秒）；None 使用配置默认值，0 表示不超时
            on_timeout: 超时后的收尾动作
            jumpable_threshold / long_threshold: 覆盖配置中的页数阈值
            config: 配置对象

        异常:
            ConfigurationError: 导航按钮缺少 emoji.name 或 emoji.id
        """
        self.config = config or default_config()
        self.name = name or f"paginator-{short_id()}"
        self.on_timeout = on_timeout
        self.use_reactions = use_reactions
        self.timeout = timeout if timeout is not None else self.config.timeouts.pagination

        self.navigation = NavigationRenderer.from_config(
            self.config.paginator,
            navigation_type=navigation_type,
            dynamic=dynamic,
            use_reactions=use_reactions,
            **({"jumpable_threshold": jumpable_threshold} if jumpable_threshold is not None else {}),
            **({"long_threshold": long_threshold} if long_threshold is not None else {}),
        )
        self.events = EventStack(PAGINATOR_EVENTS, owner=self.name)
        self.state = PageState(self.events)

        self.handle: ContentHandle | None = None
        self.channel: BaseChannel | None = None
        self.layout: NavigationLayout | None = None
        self._base: ContentSpec | None = None
        self._extra_buttons: list[tuple[int, Button]] = []

        self.collector = Collector(
            participants=participants,
            idle_timeout=self.timeout,
            absolute_timeout=0,
            mode=DispatchMode.SEQUENTIAL,
            on_timeout=TimeoutAction.NO_OP,
            not_authorized_message=self.config.paginator.not_authorized_message,
            config=self.config,
            name=self.name,
        )
        self._register_listeners()

        if pages:
            self.add_chapter(pages, ChapterData(label="Default"))

    # ------------------------------------------------------------------
    # 章节与配置
    # ------------------------------------------------------------------

    @property
    def chapters(self) -> list[Chapter]:
        return self.state.chapters

    @property
    def index(self) -> PageIndex:
        return self.state.index

    @property
    def current_page(self) -> Page | None:
        return self.state.current

    def add_chapter(self, pages: Page | list[Page], data: ChapterData | None = None) -> "Paginator":
        self.state.add_chapter(pages, data)
        return self

    def splice_chapters(self, index: int, count: int) -> "Paginator":
        self.state.splice_chapters(index, count)
        return self

    def hydrate_chapter(self, index: int, pages: Page | list[Page], replace_pages: bool = False) -> "Paginator":
        self.state.hydrate_chapter(index, pages, replace_pages)
        return self

    def set_navigation_type(self, navigation_type: NavigationType) -> "Paginator":
        self.navigation.navigation_type = navigation_type
        return self

    def on(self, event: str, listener: Callable[..., Any], once: bool = False) -> "Paginator":
        """注册钩子，事件名见 PAGINATOR_EVENTS。"""
        self.events.on(event, listener, once)
        return self

    def insert_button_at(self, index: int, button: Button) -> "Paginator":
        """
        在导航行的指定位置插入自定义按钮。

        异常:
            PaginationError: 导航行已满（最多 5 个控件）
        """
        if self._nav_button_count() + len(self._extra_buttons) >= MAX_ROW_COMPONENTS:
            raise PaginationError(
                f"Cannot have more than {MAX_ROW_COMPONENTS} components in one action row"
            )
        self._extra_buttons.append((index, button))
        return self

    def _nav_button_count(self) -> int:
        """任一章节渲染时导航按钮的最大数量（未发送时同样适用）。"""
        if self.use_reactions:
            return 0
        if not self.state.chapters:
            return len(NAV_SETS[self.navigation.navigation_type])
        return max(len(self.navigation.layout(len(c.pages)).buttons) for c in self.state.chapters)

    def remove_button_at(self, *positions: int) -> "Paginator":
        """按插入顺序中的位置移除自定义按钮。"""
        for position in sorted(set(positions), reverse=True):
            if 0 <= position < len(self._extra_buttons):
                del self._extra_buttons[position]
        return self

    async def set_page(self, chapter_index: int | None = None, nested_index: int | None = None) -> PageIndex:
        return await self.state.set_page(chapter_index, nested_index)

    # ------------------------------------------------------------------
    # 渲染
    # ------------------------------------------------------------------

    def _chapter_select(self, disabled: bool = False) -> SelectMenu:
        options = [
            SelectOption(
                label=c.data.label,
                value=c.id,
                description=c.data.description,
                emoji=c.data.emoji,
                default=i == self.state.index.chapter,
            )
            for i, c in enumerate(self.state.chapters)
        ]
        return SelectMenu(custom_id=CHAPTER_SELECT_ID, options=options, disabled=disabled)

    def _nav_row(self) -> ActionRow:
        buttons: list[Button] = [] if self.use_reactions else list(self.layout.buttons)
        for index, button in self._extra_buttons:
            buttons.insert(index, button)
        return ActionRow(components=buttons)

    async def build(self) -> ContentSpec:
        """按当前位置生成完整的渲染内容。"""
        await self.state.set_page()
        chapter = self.state.current_chapter
        self.layout = self.navigation.layout(len(chapter.pages))

        base = self._base or ContentSpec()
        spec = ContentSpec(
            content=base.content,
            embeds=list(base.embeds),
            components=list(base.components),
            files=list(base.files),
            flags=list(base.flags),
            metadata=dict(base.metadata),
        )

        file = chapter.file_for(self.state.index.nested)
        if file is not None:
            spec.files.append(file)

        page = self.state.current
        if isinstance(page, list):
            spec.embeds.extend(page)
        elif isinstance(page, str):
            spec.content = page
        elif isinstance(page, Embed):
            spec.embeds.append(page)
        elif isinstance(page, Attachment):
            spec.files.append(page)
        elif isinstance(page, Container):
            spec.components.append(page)
            if "components_v2" not in spec.flags:
                spec.flags.append("components_v2")

        if len(self.state.chapters) > 1:
            spec.components.append(ActionRow(components=[self._chapter_select()]))

        nav_row = self._nav_row()
        if nav_row.components:
            spec.components.append(nav_row)
        return spec

    async def send(self, channel: BaseChannel, chat_id: str, base: ContentSpec | None = None) -> ContentHandle:
        """
        发送分页内容并开始收集导航交互。

        参数:
            channel: 渲染渠道
            chat_id: 目标聊天
            base: 每页共用的基础内容（如固定的文本或附件）

        返回:
            内容句柄
        """
        self._base = base
        spec = await self.build()
        self.channel = channel
        self.handle = await channel.render(chat_id, spec)
        await self._sync_reactions()
        self._ensure_collecting()
        logger.info(f"[{self.name}] sent {len(self.chapters)} chapter(s) as {self.handle.message_id}")
        return self.handle

    async def refresh(self) -> ContentHandle:
        """
        按当前位置重新渲染。

        异常:
            PaginationError: 尚未发送
        """
        if self.handle is None or self.channel is None:
            raise PaginationError("Cannot refresh, content has not been sent")

        spec = await self.build()
        self.handle = await self.channel.rerender(self.handle, spec)
        await self._sync_reactions()
        self._ensure_collecting()
        return self.handle

    def _ensure_collecting(self) -> None:
        has_affordances = bool(self.handle.content.affordance_ids or (self.layout and self.layout.reactions))
        if self.collector.state == LifecycleState.INACTIVE and not has_affordances:
            return
        self.collector.bind(self.handle, self.channel)

    async def _sync_reactions(self) -> None:
        if not self.use_reactions or self.layout is None:
            return
        if list(self.handle.reactions) == self.layout.reactions:
            return
        try:
            if self.handle.reactions:
                await self.channel.clear_reactions(self.handle)
            for emoji in self.layout.reactions:
                await self.channel.add_reaction(self.handle, emoji)
        except RenderError as e:
            logger.debug(f"[{self.name}] failed to sync reactions: {e}")

    # ------------------------------------------------------------------
    # 交互
    # ------------------------------------------------------------------

    def _register_listeners(self) -> None:
        ack_update = ListenerOptions(defer=DeferBehavior(update=True))
        self.collector.on(self._on_collect)
        self.collector.on(CHAPTER_SELECT_ID, self._on_chapter_select, ack_update)
        for name in NAV_NAMES:
            key = self.navigation.reaction(name) if self.use_reactions else nav_custom_id(name)
            if name == "jump":
                self.collector.on(key, self._on_jump)
            else:
                self.collector.on(key, self._on_navigation, ack_update)
        self.collector.on_end(self._on_end)

    async def _on_collect(self, event: InteractionEvent) -> None:
        if event.kind == "reaction":
            await self.events.emit("react", event, self.state.current, replace(self.state.index))
        else:
            await self.events.emit("collect", event, self.state.current, replace(self.state.index))

    async def _on_chapter_select(self, event: InteractionEvent) -> None:
        value = event.values[0] if event.values else None
        chapter_index = self.state.chapter_index_of(value) if value else None
        if chapter_index is None:
            logger.warning(f"[{self.name}] unknown chapter '{value}' selected by {event.actor_id}")
            return
        await self.state.set_page(chapter_index, 0)
        await self._refresh_if_active()

    async def _on_jump(self, event: InteractionEvent) -> None:
        await self.events.emit("jump", self.state.current, replace(self.state.index))
        await event.reply(self.config.paginator.jump_message, ephemeral=True)

    async def _on_navigation(self, event: InteractionEvent) -> None:
        name = self.navigation.name_for(event.affordance_id)
        if name is None:
            return
        await self._navigate(name, event)

    async def _refresh_if_active(self) -> None:
        """
        交互处理中的重新渲染。

        钩子可能在等待期间让会话结束；结束后不再渲染，
        内容已被删除时静默跳过。
        """
        if not self.collector.is_active:
            logger.debug(f"[{self.name}] collector ended during navigation, skipping refresh")
            return
        spec = await self.build()
        if not self.collector.is_active:
            logger.debug(f"[{self.name}] collector ended during navigation, skipping refresh")
            return
        try:
            self.handle = await self.channel.rerender(self.handle, spec)
        except ContentNotFoundError:
            return
        await self._sync_reactions()

    async def _navigate(self, name: str, event: InteractionEvent) -> None:
        if self.layout is None or name not in self.layout.names:
            logger.debug(f"[{self.name}] '{name}' is not part of the current navigation")
            return

        index = self.state.index
        await self.events.emit(name, self.state.current, replace(index))

        if name == "first":
            await self.state.set_page(index.chapter, 0)
        elif name == "back":
            await self.state.set_page(index.chapter, index.nested - 1)
        elif name == "next":
            await self.state.set_page(index.chapter, index.nested + 1)
        elif name == "last":
            await self.state.set_page(index.chapter, self.state.page_count - 1)
        await self._refresh_if_active()

    # ------------------------------------------------------------------
    # 收尾
    # ------------------------------------------------------------------

    def stop(self, reason: str = "manual") -> None:
        self.collector.stop(reason)

    async def wait_ended(self) -> str | None:
        return await self.collector.wait_ended()

    async def _on_end(self, collected: list[InteractionEvent], reason: str) -> None:
        if self.handle is None or self.channel is None:
            return

        await self.events.emit("pre_timeout", self.handle)

        if self.on_timeout == TimeoutAction.DISABLE_AFFORDANCES:
            await self._disable()
        elif self.on_timeout == TimeoutAction.CLEAR_AFFORDANCES:
            await self._clear()
        elif self.on_timeout == TimeoutAction.DELETE_CONTENT:
            try:
                await self.channel.delete(self.handle)
            except Exception as e:
                logger.debug(f"[{self.name}] delete skipped: {e}")

        await self.events.emit("post_timeout", self.handle)

    async def _disable(self) -> None:
        components: list[ActionRow | Container] = []
        if isinstance(self.state.current, Container):
            components.append(self.state.current)
        if len(self.state.chapters) > 1:
            components.append(ActionRow(components=[self._chapter_select(disabled=True)]))
        nav_row = self._nav_row().disabled()
        if nav_row.components:
            components.append(nav_row)

        await self._rerender(replace(self.handle.content, components=components))
        if self.use_reactions:
            await self._clear_reactions()

    async def _clear(self) -> None:
        if self.use_reactions:
            await self._clear_reactions()
        else:
            await self._rerender(self.handle.content.without_affordances())

    async def _rerender(self, spec: ContentSpec) -> None:
        try:
            self.handle = await self.channel.rerender(self.handle, spec)
        except ContentNotFoundError:
            pass
        except RenderError as e:
            logger.warning(f"[{self.name}] failed to update content on end: {e}")

    async def _clear_reactions(self) -> None:
        try:
            await self.channel.clear_reactions(self.handle)
        except RenderError as e:
            logger.debug(f"[{self.name}] failed to clear reactions: {e}")
