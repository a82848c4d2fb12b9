"""Git 仓库只读访问 — revision / 路径解析

GitRepo 只记住仓库路径：每个操作在 with 块内打开 dulwich Repo、读取、关闭，
调用之间不持有任何活跃资源，因此同一实例可被任意多个线程并发调用。

内容读取分为两层:
  - get_file_opener / get_blob_opener: 返回延迟打开的字节流，供流式响应使用
  - get_file / get_blob: 在其上立即读取全部内容，保证所有路径上关闭流

dulwich 读取对象时总是把整个 blob 解压为 bytes，打开器包装的是这份内存内容，
延迟的只是流的创建。
"""

from __future__ import annotations

import io
import logging
import re
import stat
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from dulwich.diff_tree import tree_changes
from dulwich.errors import NotGitRepository, NotTreeError, ObjectFormatException
from dulwich.objects import S_ISGITLINK, Blob, Tag, Tree
from dulwich.objects import Commit as DulwichCommit
from dulwich.objectspec import AmbiguousShortId, parse_object
from dulwich.patch import is_binary
from dulwich.repo import Repo

from gitan.core.exceptions import (
    BackingStoreError,
    BlobNotFoundError,
    CommitLoadError,
    IsADirectoryError,
    PathNotFoundError,
    RevisionNotFoundError,
)
from gitan.core.models import Commit, FileStat, Signature, TreeEntry
from gitan.core.protocols import StreamOpener

logger = logging.getLogger(__name__)

_IDENTITY_RE = re.compile(rb"^(.*?)\s*<([^>]*)>\s*$")
_HEX_SHA_RE = re.compile(r"^[0-9a-fA-F]{40}$")


def git_path_join(*elems: str) -> str:
    """用 "/" 连接路径片段，忽略空片段"""
    return "/".join(e for e in elems if e)


def _encode_path(path: str) -> bytes:
    """去掉首尾及重复的 /，得到规范的仓库内路径"""
    return git_path_join(*path.split("/")).encode("utf-8", "surrogateescape")


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def _bytes_opener(data: bytes) -> StreamOpener:
    def opener() -> io.BytesIO:
        return io.BytesIO(data)
    return opener


def _read_all(opener: StreamOpener) -> bytes:
    with opener() as stream:
        return stream.read()


def _parse_signature(identity: bytes, when: int, tz_offset: int) -> Signature:
    m = _IDENTITY_RE.match(identity)
    if m:
        name, email = m.group(1), m.group(2)
    else:
        name, email = identity, b""
    tz = timezone(timedelta(seconds=tz_offset))
    return Signature(
        name=_decode(name),
        email=_decode(email),
        when=datetime.fromtimestamp(when, tz=tz),
    )


class GitRepo:
    """单个 Git 对象库的只读句柄"""

    def __init__(self, path: str) -> None:
        self.path = str(path)
        # 仅用于校验路径可打开，不保留句柄
        with self._open():
            pass

    def __repr__(self) -> str:
        return f"GitRepo({self.path!r})"

    @contextmanager
    def _open(self) -> Iterator[Repo]:
        try:
            r = Repo(self.path)
        except NotGitRepository as e:
            raise BackingStoreError(f"打开仓库失败: {self.path}") from e
        except OSError as e:
            raise BackingStoreError(f"打开仓库失败: {self.path}: {e}") from e
        with r:
            yield r

    # ---- revision ----

    @staticmethod
    def _resolve(r: Repo, rev: str) -> DulwichCommit:
        if not rev:
            raise RevisionNotFoundError("revision 不能为空")
        try:
            obj = parse_object(r, rev.encode("utf-8"))
            # 附注 tag 剥离到其指向的对象
            while isinstance(obj, Tag):
                obj = r.object_store[obj.object[1]]
        except (KeyError, ValueError, IndexError) as e:
            raise RevisionNotFoundError(f"解析 revision 失败: {rev}") from e
        except AmbiguousShortId as e:
            raise RevisionNotFoundError(f"短哈希对应多个对象: {rev}") from e
        except ObjectFormatException as e:
            raise CommitLoadError(f"读取 commit 失败: {rev}: {e}") from e
        if not isinstance(obj, DulwichCommit):
            raise RevisionNotFoundError(f"revision 不是 commit: {rev}")
        return obj

    def resolve_revision(self, rev: str) -> str:
        """把 revision 表达式（分支、tag、完整或短哈希、~N / ^N 相对表达式）解析为 commit 哈希"""
        with self._open() as r:
            commit_id = _decode(self._resolve(r, rev).id)
        logger.debug("revision %s -> %s (%s)", rev, commit_id, self.path)
        return commit_id

    # ---- 目录树 ----

    @staticmethod
    def _tree_entries(r: Repo, commit: DulwichCommit, path: str) -> list[TreeEntry]:
        store = r.object_store
        tree_id = commit.tree
        encoded = _encode_path(path)
        if encoded:
            try:
                mode, tree_id = store[commit.tree].lookup_path(store.__getitem__, encoded)
            except (KeyError, NotTreeError) as e:
                raise PathNotFoundError(f"路径不存在: {path}") from e
            if not stat.S_ISDIR(mode):
                raise PathNotFoundError(f"路径不是目录: {path}")
        try:
            tree = store[tree_id]
        except KeyError as e:
            raise PathNotFoundError(f"目录对象缺失: {path}") from e
        if not isinstance(tree, Tree):
            raise PathNotFoundError(f"路径不是目录: {path}")
        return [
            TreeEntry(hash=_decode(sha), name=_decode(name), mode=int(mode))
            for name, mode, sha in tree.items()
        ]

    def get_tree(self, path: str, rev: str) -> list[TreeEntry]:
        """列出 rev 下 path 目录的直接子项（不递归）"""
        with self._open() as r:
            commit = self._resolve(r, rev)
            return self._tree_entries(r, commit, path)

    def find(self, path: str, rev: str, max_depth: int = 0) -> list[TreeEntry]:
        """以 path 为根递归列出所有后代，条目名相对于 path

        使用 LIFO 工作栈展开子目录，结果按展开顺序返回（非字典序）。
        max_depth > 0 时，若栈长度超过 max_depth，弹出的条目直接丢弃不展开；
        注意这里限制的是栈长度而非真实目录深度。
        """
        results: list[TreeEntry] = []
        with self._open() as r:
            commit = self._resolve(r, rev)
            stack = [""]
            while stack:
                if max_depth > 0 and len(stack) > max_depth:
                    stack.pop()
                    continue
                p = stack.pop()
                for te in self._tree_entries(r, commit, git_path_join(path, p)):
                    child = git_path_join(p, te.name)
                    if te.is_dir:
                        stack.append(child)
                    results.append(TreeEntry(hash=te.hash, name=child, mode=te.mode))
        return results

    # ---- 文件 ----

    def get_file_opener(self, path: str, rev: str) -> tuple[StreamOpener, FileStat]:
        """解析 rev 下的文件，返回延迟打开器和文件元信息"""
        with self._open() as r:
            commit = self._resolve(r, rev)
            store = r.object_store
            encoded = _encode_path(path)
            if not encoded:
                raise IsADirectoryError(f"路径是目录: {path or '/'}")
            try:
                mode, sha = store[commit.tree].lookup_path(store.__getitem__, encoded)
                obj = store[sha]
            except (KeyError, NotTreeError) as e:
                raise PathNotFoundError(f"文件不存在: {path}") from e
            if stat.S_ISDIR(mode) or isinstance(obj, Tree):
                raise IsADirectoryError(f"路径是目录: {path}")
            if not isinstance(obj, Blob):
                raise PathNotFoundError(f"文件不存在: {path}")
            data = obj.as_raw_string()

        file_stat = FileStat(
            id=_decode(sha),
            name=_decode(encoded),
            mode=int(mode),
            size=len(data),
            is_binary=is_binary(data),
        )
        return _bytes_opener(data), file_stat

    def get_file(self, path: str, rev: str) -> tuple[bytes, FileStat]:
        """读取 rev 下文件的全部内容"""
        opener, file_stat = self.get_file_opener(path, rev)
        return _read_all(opener), file_stat

    # ---- blob ----

    def get_blob_opener(self, blob_hash: str) -> StreamOpener:
        """按内容哈希打开 blob，不经过 revision / 路径解析"""
        if not _HEX_SHA_RE.match(blob_hash or ""):
            raise BlobNotFoundError(f"blob 哈希非法: {blob_hash}")
        with self._open() as r:
            try:
                obj = r.object_store[blob_hash.lower().encode("ascii")]
            except KeyError as e:
                raise BlobNotFoundError(f"blob 不存在: {blob_hash}") from e
            if not isinstance(obj, Blob):
                raise BlobNotFoundError(f"对象不是 blob: {blob_hash}")
            return _bytes_opener(obj.as_raw_string())

    def get_blob(self, blob_hash: str) -> bytes:
        """按内容哈希读取 blob 全部内容"""
        return _read_all(self.get_blob_opener(blob_hash))

    # ---- commit ----

    @staticmethod
    def _changed_files(r: Repo, commit: DulwichCommit) -> list[FileStat]:
        """commit 相对父提交新增 / 修改的文件；根提交列出全部文件，合并提交取各父提交的并集"""
        store = r.object_store
        parent_trees = [store[p].tree for p in commit.parents] or [None]
        files: list[FileStat] = []
        seen: set[bytes] = set()
        for parent_tree in parent_trees:
            for change in tree_changes(store, parent_tree, commit.tree):
                new = change.new
                if new is None or new.sha is None or new.path in seen:
                    continue
                if stat.S_ISDIR(new.mode) or S_ISGITLINK(new.mode):
                    continue
                seen.add(new.path)
                data = store[new.sha].as_raw_string()
                files.append(FileStat(
                    id=_decode(new.sha),
                    name=_decode(new.path),
                    mode=int(new.mode),
                    size=len(data),
                    is_binary=is_binary(data),
                ))
        return files

    def get_commit(self, rev: str) -> Commit:
        """读取 commit 元信息及其变更文件列表"""
        with self._open() as r:
            ci = self._resolve(r, rev)
            try:
                files = self._changed_files(r, ci)
            except (KeyError, ObjectFormatException) as e:
                raise CommitLoadError(f"读取 commit 文件列表失败: {rev}: {e}") from e
            encoding = (ci.encoding or b"utf-8").decode("ascii", "replace")
            try:
                message = ci.message.decode(encoding, "replace")
            except LookupError:
                message = ci.message.decode("utf-8", "replace")
            return Commit(
                id=_decode(ci.id),
                message=message,
                author=_parse_signature(ci.author, ci.author_time, ci.author_timezone),
                committer=_parse_signature(ci.committer, ci.commit_time, ci.commit_timezone),
                parent_hashes=[_decode(p) for p in ci.parents],
                files=files,
            )

    def close(self) -> None:
        """关闭仓库（无操作：调用之间不持有资源）"""
