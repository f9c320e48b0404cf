"""
渲染渠道模块 - 把 ContentSpec 呈现给用户，并把用户交互送回事件总线。

本模块采用插件式架构，通过统一的 BaseChannel 抽象基类定义渠道接口：
- MemoryChannel：进程内渠道，记录所有渲染/编辑/删除/回执，用于测试和嵌入
- ConsoleChannel：终端渠道，用 rich 渲染内容，用 prompt_toolkit 读取操作

【Java 开发者类比】
- BaseChannel 相当于 Java 接口，定义了 render/rerender/delete/respond 契约
- 各渠道实现类相当于接口的不同实现

【二开提示】
接入真实聊天平台时继承 BaseChannel：
1. render/rerender/delete 调用平台的发送/编辑/删除接口
2. 平台的交互回调里调用 _handle_interaction() 把事件发布到总线
3. respond() 对接平台的交互确认接口
"""

from nanopanel.channels.base import BaseChannel
from nanopanel.channels.console import ConsoleChannel
from nanopanel.channels.memory import MemoryChannel

__all__ = ["BaseChannel", "ConsoleChannel", "MemoryChannel"]
