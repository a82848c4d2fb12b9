"""多租户仓库注册表

结构: site -> user -> repo 名 -> GitRepo

启动时由 RegistryBuilder 按固定顺序累积条目（后写覆盖先写）:
  1. 发现器（walker）在各 root 下找到的仓库
  2. 配置文件中显式声明的 sites
build() 之后得到不可变的 TenantRegistry，查询无需加锁。
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from types import MappingProxyType
from typing import NamedTuple

from gitan.core.config import Config, RootConfig
from gitan.core.exceptions import (
    BackingStoreError,
    ConfigError,
    RepoNotFoundError,
    SiteNotFoundError,
    UserNotFoundError,
)
from gitan.core.repo import GitRepo

logger = logging.getLogger(__name__)


class FoundRepo(NamedTuple):
    """发现器产出的条目: name 为相对 root 的 "user/repo"，path 为对象库位置"""

    name: str
    path: str


# 发现器: 给定 root 配置，产出该 root 下的仓库
Walker = Callable[[RootConfig], Iterable[FoundRepo]]
RepoOpener = Callable[[str], GitRepo]

TenantKey = tuple[str, str, str]


class TenantRegistry:
    """不可变的三级仓库映射"""

    def __init__(self, tree: dict[str, dict[str, dict[str, GitRepo]]]) -> None:
        self._tree = MappingProxyType({
            site: MappingProxyType({
                user: MappingProxyType(dict(repos)) for user, repos in users.items()
            })
            for site, users in tree.items()
        })

    def lookup(self, site: str, user: str, repo: str) -> GitRepo:
        """查找仓库句柄，缺失时按缺失层级抛出对应异常"""
        users = self._tree.get(site)
        if users is None:
            raise SiteNotFoundError(site)
        repos = users.get(user)
        if repos is None:
            raise UserNotFoundError(user)
        handle = repos.get(repo)
        if handle is None:
            raise RepoNotFoundError(repo)
        return handle

    def sites(self) -> list[str]:
        return sorted(self._tree)

    def users(self, site: str) -> list[str]:
        users = self._tree.get(site)
        if users is None:
            raise SiteNotFoundError(site)
        return sorted(users)

    def repos(self, site: str, user: str) -> list[str]:
        users = self._tree.get(site)
        if users is None:
            raise SiteNotFoundError(site)
        repos = users.get(user)
        if repos is None:
            raise UserNotFoundError(user)
        return sorted(repos)

    def to_dict(self) -> dict[str, dict[str, list[str]]]:
        """site -> user -> [repo 名]，用于列表接口"""
        return {
            site: {user: sorted(repos) for user, repos in sorted(users.items())}
            for site, users in sorted(self._tree.items())
        }

    def __iter__(self) -> Iterator[TenantKey]:
        for site, users in self._tree.items():
            for user, repos in users.items():
                for name in repos:
                    yield (site, user, name)

    def __len__(self) -> int:
        return sum(len(repos) for users in self._tree.values() for repos in users.values())

    def close(self) -> None:
        """关闭所有仓库句柄（进程退出时调用）"""
        for site, user, name in self:
            self._tree[site][user][name].close()


class RegistryBuilder:
    """按顺序累积 (site, user, repo) -> GitRepo，后写覆盖先写"""

    def __init__(self, repo_opener: RepoOpener = GitRepo) -> None:
        self._open_repo = repo_opener
        self._tree: dict[str, dict[str, dict[str, GitRepo]]] = {}
        self._built = False

    def add(self, site: str, user: str, repo: str, handle: GitRepo) -> RegistryBuilder:
        """写入一个仓库句柄；同键已有句柄时关闭旧句柄"""
        if self._built:
            raise RuntimeError("注册表已构建，不能再添加条目")
        repos = self._tree.setdefault(site, {}).setdefault(user, {})
        old = repos.get(repo)
        if old is not None and old is not handle:
            logger.info("覆盖仓库 %s/%s/%s: %s -> %s", site, user, repo, old.path, handle.path)
            old.close()
        repos[repo] = handle
        return self

    def add_path(self, site: str, user: str, repo: str, path: str) -> RegistryBuilder:
        """打开 path 处的仓库并写入"""
        return self.add(site, user, repo, self._open_repo(path))

    def add_discovered(self, site: str, found: Iterable[FoundRepo]) -> RegistryBuilder:
        """写入发现器产出的仓库；无法打开或无法拆分出 user/repo 的条目跳过"""
        for item in found:
            user, sep, repo = item.name.strip("/").partition("/")
            if not sep or not user or not repo:
                logger.warning("跳过无法识别 user/repo 的仓库: %s (%s)", item.name, item.path)
                continue
            try:
                self.add_path(site, user, repo, item.path)
            except BackingStoreError as e:
                logger.warning("跳过无法打开的仓库 %s: %s", item.path, e)
        return self

    def add_sites(self, sites: dict[str, dict[str, dict[str, str]]]) -> RegistryBuilder:
        """写入显式配置的 site -> user -> repo -> path；打开失败视为配置错误"""
        for site, users in sites.items():
            for user, repos in users.items():
                for name, path in repos.items():
                    try:
                        self.add_path(site, user, name, path)
                    except BackingStoreError as e:
                        raise ConfigError(f"sites.{site}.{user}.{name}: {e}") from e
        return self

    def build(self) -> TenantRegistry:
        self._built = True
        registry = TenantRegistry(self._tree)
        logger.info("租户注册表已构建: %d 个仓库", len(registry))
        return registry


def build_registry(
    config: Config,
    walker: Walker | None = None,
    repo_opener: RepoOpener = GitRepo,
) -> TenantRegistry:
    """先写入发现的仓库，再写入显式配置（显式配置优先）"""
    builder = RegistryBuilder(repo_opener)
    if config.roots and walker is None:
        logger.warning("配置了 %d 个 roots，但未提供发现器，已忽略", len(config.roots))
    if walker is not None:
        for root in config.roots:
            builder.add_discovered(root.site_name, walker(root))
    builder.add_sites(config.sites)
    return builder.build()
