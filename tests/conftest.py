"""测试共享 fixture — 用 dulwich 在 tmp_path 下直接构造 Git 仓库（不依赖 git 命令）

sample_repo 的历史:

  c1 (root, develop, tag v1)        c2 (master, HEAD)           side
  ├── README.md   "hello\\n"        README.md 改为 "hello v2\\n"  基于 c1 新增 side.txt
  ├── bin/data.bin (二进制)          新增 src/new.py
  ├── docs/guide.md
  └── src/main.py, src/lib/util.py

  merge: parents = [c2, side]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from dulwich.objects import Blob, Commit, Tag, Tree
from dulwich.repo import Repo

C1_FILES: dict[str, bytes] = {
    "README.md": b"hello\n",
    "bin/data.bin": b"\x00\x01\x02\x03binary",
    "docs/guide.md": b"# Guide\n",
    "src/main.py": b"print('main')\n",
    "src/lib/util.py": b"def util():\n    return 1\n",
}

C2_FILES: dict[str, bytes] = {
    **C1_FILES,
    "README.md": b"hello v2\n",
    "src/new.py": b"NEW = True\n",
}

SIDE_FILES: dict[str, bytes] = {
    **C1_FILES,
    "side.txt": b"side branch\n",
}

MERGE_FILES: dict[str, bytes] = {
    **C2_FILES,
    "side.txt": b"side branch\n",
}


def _build_tree(repo: Repo, files: dict[str, bytes]) -> bytes:
    tree = Tree()
    subdirs: dict[str, dict[str, bytes]] = {}
    for path, data in files.items():
        head, _, rest = path.partition("/")
        if rest:
            subdirs.setdefault(head, {})[rest] = data
            continue
        blob = Blob.from_string(data)
        repo.object_store.add_object(blob)
        tree.add(head.encode(), 0o100644, blob.id)
    for name, sub in subdirs.items():
        tree.add(name.encode(), 0o040000, _build_tree(repo, sub))
    repo.object_store.add_object(tree)
    return tree.id


@dataclass
class GitFixture:
    """在磁盘上构造提交历史的小工具"""

    path: Path
    _tick: int = 0

    def __post_init__(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        self.repo = Repo.init(str(self.path))

    def commit(
        self,
        files: dict[str, bytes],
        message: str,
        parents: list[str] | None = None,
        branch: str = "master",
    ) -> str:
        c = Commit()
        c.tree = _build_tree(self.repo, files)
        c.parents = [p.encode() for p in parents or []]
        c.author = c.committer = b"Alice Example <alice@example.com>"
        self._tick += 1
        c.author_time = c.commit_time = 1700000000 + self._tick
        c.author_timezone = c.commit_timezone = 0
        c.encoding = b"UTF-8"
        c.message = message.encode()
        self.repo.object_store.add_object(c)
        self.repo.refs[b"refs/heads/" + branch.encode()] = c.id
        return c.id.decode()

    def tag(self, name: str, commit_id: str) -> None:
        self.repo.refs[b"refs/tags/" + name.encode()] = commit_id.encode()

    def annotated_tag(self, name: str, commit_id: str) -> None:
        t = Tag()
        t.name = name.encode()
        t.tagger = b"Alice Example <alice@example.com>"
        t.tag_time = 1700000000
        t.tag_timezone = 0
        t.message = b"release " + name.encode() + b"\n"
        t.object = (Commit, commit_id.encode())
        self.repo.object_store.add_object(t)
        self.repo.refs[b"refs/tags/" + name.encode()] = t.id

    def point_head(self, branch: str) -> None:
        self.repo.refs.set_symbolic_ref(b"HEAD", b"refs/heads/" + branch.encode())


@dataclass
class SampleRepo:
    path: Path
    c1: str
    c2: str
    side: str
    merge: str
    commits: dict[str, str] = field(default_factory=dict)
    files: dict[str, dict[str, bytes]] = field(default_factory=dict)


@pytest.fixture()
def git_fixture(tmp_path: Path):
    def make(name: str = "repo") -> GitFixture:
        return GitFixture(tmp_path / name)
    return make


@pytest.fixture()
def sample_repo(git_fixture) -> SampleRepo:
    g = git_fixture("sample")
    c1 = g.commit(C1_FILES, "initial commit\n", branch="develop")
    g.tag("v1", c1)
    g.annotated_tag("v1-annotated", c1)
    side = g.commit(SIDE_FILES, "side change\n", parents=[c1], branch="side")
    c2 = g.commit(C2_FILES, "update readme\n", parents=[c1], branch="master")
    merge = g.commit(MERGE_FILES, "merge side\n", parents=[c2, side], branch="merged")
    g.point_head("master")
    g.repo.close()
    return SampleRepo(
        path=g.path, c1=c1, c2=c2, side=side, merge=merge,
        commits={
            "develop": c1, "v1": c1, "v1-annotated": c1,
            "master": c2, "HEAD": c2, "merged": merge,
        },
        files={"develop": C1_FILES, "master": C2_FILES, "side": SIDE_FILES, "merged": MERGE_FILES},
    )
