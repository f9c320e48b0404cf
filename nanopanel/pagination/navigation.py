"""
导航渲染模块 - 根据章节页数计算导航控件。

四种导航类型对应固定的按钮组合：
    SHORT       back / next
    SHORT_JUMP  back / jump / next
    LONG        first / back / next / last
    LONG_JUMP   first / back / jump / next / last

开启 dynamic 后，每次渲染都按当前章节的 is_long / can_jump 重新选择类型，
配置的类型本身不会被修改。
输出要么是按钮（custom_id 为 btn_<名称>），要么是表情回应列表，二者互斥。
"""

from dataclasses import dataclass, field
from enum import Enum

from nanopanel.config.schema import NavButtonConfig, PaginatorConfig
from nanopanel.errors import ConfigurationError
from nanopanel.render.components import Button, ButtonStyle

NAV_NAMES = ("first", "back", "jump", "next", "last")


class NavigationType(str, Enum):
    """导航类型。"""
    SHORT = "short"
    SHORT_JUMP = "short_jump"
    LONG = "long"
    LONG_JUMP = "long_jump"


NAV_SETS: dict[NavigationType, tuple[str, ...]] = {
    NavigationType.SHORT: ("back", "next"),
    NavigationType.SHORT_JUMP: ("back", "jump", "next"),
    NavigationType.LONG: ("first", "back", "next", "last"),
    NavigationType.LONG_JUMP: ("first", "back", "jump", "next", "last"),
}


def nav_custom_id(name: str) -> str:
    return f"btn_{name}"


@dataclass
class NavigationLayout:
    """
    一次渲染的导航结果。

    属性:
        is_required: 页数 >= 2 时才需要导航
        is_long: 页数达到 long_threshold
        can_jump: 页数达到 jumpable_threshold
        type: 本次实际使用的导航类型
        names: 本次使用的导航名称（不需要导航时为空）
        buttons: 按钮模式下的按钮
        reactions: 表情模式下的表情 ID
    """
    is_required: bool
    is_long: bool
    can_jump: bool
    type: NavigationType
    names: list[str] = field(default_factory=list)
    buttons: list[Button] = field(default_factory=list)
    reactions: list[str] = field(default_factory=list)


class NavigationRenderer:
    """
    导航渲染器。

    构造时校验每个导航按钮都定义了 emoji.name 与 emoji.id，
    缺失时抛出 ConfigurationError。
    """

    def __init__(
        self,
        buttons: dict[str, NavButtonConfig],
        navigation_type: NavigationType = NavigationType.SHORT,
        dynamic: bool = False,
        use_reactions: bool = False,
        jumpable_threshold: int = 5,
        long_threshold: int = 4,
    ):
        for name in NAV_NAMES:
            button = buttons.get(name)
            if button is None:
                raise ConfigurationError(f"Navigation button '{name}' is not defined")
            if not button.emoji.id:
                raise ConfigurationError(f"Navigation button '{name}.emoji.id' is not defined")
            if not button.emoji.name:
                raise ConfigurationError(f"Navigation button '{name}.emoji.name' is not defined")

        self.buttons = buttons
        self.navigation_type = navigation_type
        self.dynamic = dynamic
        self.use_reactions = use_reactions
        self.jumpable_threshold = jumpable_threshold
        self.long_threshold = long_threshold

    @classmethod
    def from_config(cls, config: PaginatorConfig, **kwargs) -> "NavigationRenderer":
        kwargs.setdefault("jumpable_threshold", config.jumpable_threshold)
        kwargs.setdefault("long_threshold", config.long_threshold)
        return cls(config.buttons, **kwargs)

    def effective_type(self, is_long: bool, can_jump: bool) -> NavigationType:
        if not self.dynamic:
            return self.navigation_type
        if is_long:
            return NavigationType.LONG_JUMP if can_jump else NavigationType.LONG
        return NavigationType.SHORT_JUMP if can_jump else NavigationType.SHORT

    def button(self, name: str) -> Button:
        """按配置生成导航按钮：有 label 用 label，否则用 emoji。"""
        config = self.buttons[name]
        return Button(
            custom_id=nav_custom_id(name),
            label=config.label,
            emoji=None if config.label else config.emoji.name,
            style=ButtonStyle.SECONDARY,
        )

    def reaction(self, name: str) -> str:
        return self.buttons[name].emoji.id

    def name_for(self, affordance_id: str) -> str | None:
        """把按钮 custom_id 或表情 ID 映射回导航名称。"""
        for name in NAV_NAMES:
            if affordance_id == nav_custom_id(name) or affordance_id == self.buttons[name].emoji.id:
                return name
        return None

    def layout(self, chapter_length: int) -> NavigationLayout:
        is_required = chapter_length >= 2
        is_long = chapter_length >= self.long_threshold
        can_jump = chapter_length >= self.jumpable_threshold
        nav_type = self.effective_type(is_long, can_jump)

        result = NavigationLayout(is_required=is_required, is_long=is_long, can_jump=can_jump, type=nav_type)
        if not is_required:
            return result

        result.names = list(NAV_SETS[nav_type])
        if self.use_reactions:
            result.reactions = [self.reaction(n) for n in result.names]
        else:
            result.buttons = [self.button(n) for n in result.names]
        return result
