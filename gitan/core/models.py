"""核心数据模型

仓库浏览涉及的只读实体集中定义于此：TreeEntry / FileStat / Signature / Commit。
所有实体均为不可变 dataclass，to_dict() 输出可直接 JSON 序列化的字典。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime

# 目录位（八进制 040000），区分子树与文件
MODE_DIR = 0o040000


@dataclass(frozen=True)
class TreeEntry:
    """目录树中的一项"""

    hash: str
    name: str
    mode: int

    @property
    def is_dir(self) -> bool:
        return bool(self.mode & MODE_DIR)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FileStat:
    """文件元信息"""

    id: str
    name: str
    mode: int
    size: int
    is_binary: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Signature:
    """作者 / 提交者签名"""

    name: str
    email: str
    when: datetime

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "when": self.when.isoformat()}


@dataclass(frozen=True)
class Commit:
    """commit 快照"""

    id: str
    message: str
    author: Signature
    committer: Signature
    parent_hashes: list[str] = field(default_factory=list)
    files: list[FileStat] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "author": self.author.to_dict(),
            "committer": self.committer.to_dict(),
            "parent_hashes": list(self.parent_hashes),
            "files": [f.to_dict() for f in self.files],
        }
