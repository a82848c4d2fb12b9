"""领域协议定义

集中定义各层之间的接口契约（Protocol），
使解析器 / Web 层依赖抽象而非具体的 GitRepo 实现。

使用 typing.Protocol 而非 ABC，测试替身无需继承即可满足协议。
"""

from __future__ import annotations

from typing import Any, BinaryIO, Protocol

from gitan.core.models import FileStat


class StreamOpener(Protocol):
    """延迟打开的字节流

    调用时才真正打开底层资源；调用方负责关闭返回的流。
    """

    def __call__(self) -> BinaryIO:
        ...


class Resolver(Protocol):
    """解析器协议：把参数列表映射为延迟字节流 + 可选元信息"""

    def resolve(self, args: list[str]) -> tuple[StreamOpener, Any]:
        ...


class FileProvider(Protocol):
    """按 (path, rev) 提供文件的仓库协议（RevisionResolver 依赖）"""

    def get_file_opener(self, path: str, rev: str) -> tuple[StreamOpener, FileStat]:
        ...
