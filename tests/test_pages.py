"""Tests for page wrapping, chapter management and page state transitions."""

import pytest

from nanopanel.errors import PaginationError
from nanopanel.pagination import ChapterData, PageState, normalize_pages, wrap_positive
from nanopanel.render import Embed


class TestWrapPositive:

    def test_examples(self):
        assert wrap_positive(-1, 3) == 3
        assert wrap_positive(4, 3) == 0
        assert wrap_positive(2, 3) == 2
        assert wrap_positive(0, 0) == 0

    def test_always_in_range(self):
        for max_index in range(0, 6):
            for n in range(-20, 21):
                assert 0 <= wrap_positive(n, max_index) <= max_index


class TestNormalizePages:

    def test_top_level_list_is_multiple_pages(self):
        a, b = Embed(title="a"), Embed(title="b")
        assert normalize_pages([a, b]) == [a, b]

    def test_nested_list_is_one_grouped_page(self):
        a, b = Embed(title="a"), Embed(title="b")
        pages = normalize_pages([[a, b]])
        assert len(pages) == 1
        assert pages[0] == [a, b]

    def test_single_page(self):
        assert normalize_pages("hello") == ["hello"]


class TestChapters:

    def test_default_chapter_exclusivity(self):
        state = PageState()
        for i in range(3):
            state.add_chapter([f"page {i}"], ChapterData(label=f"c{i}"))

        defaults = [c for c in state.chapters if c.is_default]
        assert len(defaults) == 1
        assert defaults[0] is state.chapters[0]

    def test_new_default_clears_previous(self):
        state = PageState()
        state.add_chapter(["a"], ChapterData(label="a"))
        state.add_chapter(["b"], ChapterData(label="b", default=True))

        assert [c.is_default for c in state.chapters] == [False, True]
        assert state.default_chapter is state.chapters[1]

    def test_explicit_false_on_first_chapter(self):
        state = PageState()
        state.add_chapter(["a"], ChapterData(label="a", default=False))
        assert state.default_chapter is None

    def test_missing_value_is_generated(self):
        state = PageState()
        state.add_chapter(["a"], ChapterData(label="a"))
        state.add_chapter(["b"], ChapterData(label="b", value="custom"))
        state.add_chapter(["c"])

        assert [c.id for c in state.chapters] == ["ssm_c:0", "custom", "ssm_c:2"]
        assert state.chapter_index_of("custom") == 1
        assert state.chapter_index_of("missing") is None

    def test_caller_data_is_not_mutated(self):
        data = ChapterData(label="a")
        PageState().add_chapter(["a"], data)
        assert data.value is None

    def test_hydrate_appends_or_replaces(self):
        state = PageState()
        state.add_chapter(["a"])
        state.hydrate_chapter(0, ["b", "c"])
        assert state.chapters[0].pages == ["a", "b", "c"]

        state.hydrate_chapter(0, "z", replace_pages=True)
        assert state.chapters[0].pages == ["z"]

    def test_hydrate_unknown_chapter(self):
        with pytest.raises(PaginationError):
            PageState().hydrate_chapter(2, ["a"])

    def test_splice(self):
        state = PageState()
        for i in range(4):
            state.add_chapter([str(i)])
        removed = state.splice_chapters(1, 2)
        assert [c.id for c in removed] == ["ssm_c:1", "ssm_c:2"]
        assert [c.id for c in state.chapters] == ["ssm_c:0", "ssm_c:3"]


class TestSetPage:

    @pytest.fixture
    def state(self):
        state = PageState()
        state.add_chapter(["a0", "a1", "a2"], ChapterData(label="A"))
        state.add_chapter(["b0", "b1"], ChapterData(label="B"))
        return state

    @pytest.mark.asyncio
    async def test_chapter_switch_resets_nested(self, state):
        await state.set_page(0, 2)
        assert (state.index.chapter, state.index.nested) == (0, 2)

        await state.set_page(1, 1)
        assert (state.index.chapter, state.index.nested) == (1, 0)
        assert state.current == "b0"

    @pytest.mark.asyncio
    async def test_nested_wraps_within_chapter(self, state):
        await state.set_page(0, -1)
        assert state.index.nested == 2
        await state.set_page(0, 3)
        assert state.index.nested == 0

    @pytest.mark.asyncio
    async def test_chapter_wraps(self, state):
        await state.set_page(-1)
        assert state.index.chapter == 1

    @pytest.mark.asyncio
    async def test_hook_order_on_chapter_change(self, state):
        calls = []
        for name in ("before_chapter_change", "before_page_change", "chapter_change", "page_change"):
            state.events.on(name, lambda *args, name=name: calls.append(name))

        await state.set_page(1, 0)
        assert calls == ["before_chapter_change", "before_page_change", "chapter_change", "page_change"]

    @pytest.mark.asyncio
    async def test_hook_order_on_page_change(self, state):
        calls = []
        for name in ("before_chapter_change", "before_page_change", "chapter_change", "page_change"):
            state.events.on(name, lambda *args, name=name: calls.append(name))

        await state.set_page(0, 1)
        assert calls == ["before_page_change", "page_change"]

    @pytest.mark.asyncio
    async def test_no_change_fires_no_change_hooks(self, state):
        await state.set_page()
        calls = []
        state.events.on("page_change", lambda *args: calls.append("page_change"))
        state.events.on("chapter_change", lambda *args: calls.append("chapter_change"))

        await state.set_page()
        assert calls == []
        assert state.current == "a0"

    @pytest.mark.asyncio
    async def test_once_hooks_fire_once(self, state):
        calls = []
        state.events.on("page_change", lambda page, index: calls.append(page), once=True)

        await state.set_page(0, 1)
        await state.set_page(0, 2)
        assert calls == ["a1"]

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_block_navigation(self, state):
        def boom(*args):
            raise RuntimeError("hook failed")

        state.events.on("before_page_change", boom)
        await state.set_page(0, 1)
        assert state.current == "a1"

    @pytest.mark.asyncio
    async def test_reset_goes_to_default_chapter(self, state):
        await state.set_page(1, 1)
        await state.reset()
        assert (state.index.chapter, state.index.nested) == (0, 0)

    @pytest.mark.asyncio
    async def test_empty_state_raises(self):
        with pytest.raises(PaginationError):
            await PageState().set_page()

    @pytest.mark.asyncio
    async def test_empty_chapter_raises(self):
        state = PageState()
        state.add_chapter([])
        with pytest.raises(PaginationError):
            await state.set_page()

    def test_unknown_hook_name(self, state):
        with pytest.raises(ValueError):
            state.events.on("nope", lambda: None)
