"""可组合解析器链

把 (scheme, 参数...) 形式的请求映射为延迟字节流:

  RouteResolver ── "rev"  → RevisionResolver  [revision, path]   读取历史版本
                ├─ "work" → WorktreeResolver  [relative path]    读取工作区文件
                └─ "ext"  → ExternalResolver  [absolute path]    读取白名单内外部文件

路径校验（沙箱 / 白名单）全部在返回打开器之前完成，校验失败时不会发生任何文件系统访问。
解析器只持有构造时的配置，不保存调用状态，可被并发复用。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any, BinaryIO

from gitan.core.exceptions import (
    ArityError,
    InvalidPathError,
    NotWhitelistedError,
    UnknownSchemeError,
)
from gitan.core.protocols import FileProvider, Resolver, StreamOpener

logger = logging.getLogger(__name__)

FileOpenFunc = Callable[[str], BinaryIO]


def _open_binary(path: str) -> BinaryIO:
    return open(path, "rb")  # noqa: SIM115


def _is_within(path: str, root: str) -> bool:
    """path 是否等于 root 或位于 root 之下（按路径分量比较，非字符串前缀）"""
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


def _lazy_open(path: str, open_func: FileOpenFunc) -> StreamOpener:
    def opener() -> BinaryIO:
        return open_func(path)
    return opener


def _require_args(name: str, args: list[str], count: int) -> None:
    if len(args) != count:
        raise ArityError(f"{name}.resolve 需要 {count} 个参数，实际 {len(args)} 个")


class RevisionResolver:
    """[revision, path] → 仓库历史版本中的文件"""

    def __init__(self, repo: FileProvider) -> None:
        self.repo = repo

    def resolve(self, args: list[str]) -> tuple[StreamOpener, Any]:
        _require_args("RevisionResolver", args, 2)
        rev, path = args
        return self.repo.get_file_opener(path, rev)


class WorktreeResolver:
    """[relative path] → 项目工作区中的文件

    拼接后的路径必须严格位于项目根目录内，否则直接拒绝。
    """

    def __init__(self, project_path: str, open_func: FileOpenFunc = _open_binary) -> None:
        self.project_path = os.path.normpath(os.path.abspath(project_path))
        self._open = open_func

    def resolve(self, args: list[str]) -> tuple[StreamOpener, Any]:
        _require_args("WorktreeResolver", args, 1)
        fname = args[0]
        fpath = os.path.normpath(os.path.join(self.project_path, fname))
        if fpath == self.project_path or not _is_within(fpath, self.project_path):
            logger.warning("拒绝越界路径: %s", fname)
            raise InvalidPathError(f"路径非法: {fname}")
        return _lazy_open(fpath, self._open), None


class ExternalResolver:
    """[path] → 仓库之外的文件，仅限白名单前缀

    白名单是唯一的安全边界：先做词法规范化（消解 . 和 ..），再匹配前缀。
    """

    def __init__(
        self, prefix_whitelist: Iterable[str] = (), open_func: FileOpenFunc = _open_binary,
    ) -> None:
        self.prefix_whitelist = tuple(os.path.normpath(p) for p in prefix_whitelist if p)
        self._open = open_func

    def resolve(self, args: list[str]) -> tuple[StreamOpener, Any]:
        _require_args("ExternalResolver", args, 1)
        fpath = os.path.normpath(args[0])
        if not any(_is_within(fpath, prefix) for prefix in self.prefix_whitelist):
            logger.warning("拒绝白名单外路径: %s", fpath)
            raise NotWhitelistedError(f"{fpath} 不在白名单内")
        return _lazy_open(fpath, self._open), None


class RouteResolver:
    """按首个参数 (scheme) 分派到子解析器，其余参数原样转发"""

    def __init__(self, resolver_map: Mapping[str, Resolver]) -> None:
        self.resolver_map = MappingProxyType(dict(resolver_map))

    def resolve(self, args: list[str]) -> tuple[StreamOpener, Any]:
        if len(args) < 1:
            raise ArityError("RouteResolver.resolve 至少需要 1 个参数")
        name, rest = args[0], list(args[1:])
        sub = self.resolver_map.get(name)
        if sub is None:
            raise UnknownSchemeError(f"解析器 '{name}' 不存在")
        logger.debug("路由解析: %s %s", name, rest)
        return sub.resolve(rest)


def default_resolver(
    project_path: str,
    repo: FileProvider,
    whitelist: Iterable[str] = (),
) -> RouteResolver:
    """默认组合: rev / work / ext 三个 scheme 挂在同一个 RouteResolver 下"""
    return RouteResolver({
        "rev": RevisionResolver(repo),
        "work": WorktreeResolver(project_path),
        "ext": ExternalResolver(whitelist),
    })
