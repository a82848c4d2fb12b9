"""TenantRegistry / RegistryBuilder 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from gitan.core.config import Config, RootConfig
from gitan.core.exceptions import (
    BackingStoreError,
    ConfigError,
    RepoNotFoundError,
    SiteNotFoundError,
    TenantNotFoundError,
    UserNotFoundError,
)
from gitan.core.registry import FoundRepo, RegistryBuilder, build_registry


class FakeRepo:
    """只记录路径和关闭状态的仓库替身"""

    def __init__(self, path: str) -> None:
        if "broken" in path:
            raise BackingStoreError(f"不是 Git 仓库: {path}")
        self.path = path
        self.closed = False

    def close(self) -> None:
        self.closed = True


class TestTenantRegistry:
    @pytest.fixture()
    def registry(self):
        b = RegistryBuilder(FakeRepo)
        b.add_path("github.com", "taskie", "gitan", "/r/gitan")
        b.add_path("github.com", "taskie", "dotfiles", "/r/dotfiles")
        b.add_path("gitlab.com", "alice", "notes", "/r/notes")
        return b.build()

    def test_lookup(self, registry) -> None:
        assert registry.lookup("github.com", "taskie", "gitan").path == "/r/gitan"

    @pytest.mark.parametrize("key, exc, level", [
        (("nope", "taskie", "gitan"), SiteNotFoundError, "site"),
        (("github.com", "nobody", "gitan"), UserNotFoundError, "user"),
        (("github.com", "taskie", "missing"), RepoNotFoundError, "repo"),
        (("gitlab.com", "taskie", "gitan"), UserNotFoundError, "user"),
    ])
    def test_lookup_reports_missing_level(self, registry, key, exc, level) -> None:
        with pytest.raises(exc) as info:
            registry.lookup(*key)
        assert isinstance(info.value, TenantNotFoundError)
        assert info.value.level == level

    def test_listing(self, registry) -> None:
        assert registry.sites() == ["github.com", "gitlab.com"]
        assert registry.users("github.com") == ["taskie"]
        assert registry.repos("github.com", "taskie") == ["dotfiles", "gitan"]
        assert registry.to_dict() == {
            "github.com": {"taskie": ["dotfiles", "gitan"]},
            "gitlab.com": {"alice": ["notes"]},
        }
        assert len(registry) == 3
        assert ("gitlab.com", "alice", "notes") in set(registry)

    def test_listing_missing_levels(self, registry) -> None:
        with pytest.raises(SiteNotFoundError):
            registry.users("nope")
        with pytest.raises(UserNotFoundError):
            registry.repos("github.com", "nobody")

    def test_immutable(self, registry) -> None:
        with pytest.raises(TypeError):
            registry._tree["evil.com"] = {}  # type: ignore[index]
        with pytest.raises(TypeError):
            registry._tree["github.com"]["taskie"]["x"] = None  # type: ignore[index]

    def test_close_closes_all_handles(self, registry) -> None:
        handles = [registry.lookup(*key) for key in registry]
        registry.close()
        assert all(h.closed for h in handles)


class TestRegistryBuilder:
    def test_last_writer_wins_and_closes_replaced(self) -> None:
        b = RegistryBuilder(FakeRepo)
        first = FakeRepo("/a")
        second = FakeRepo("/b")
        b.add("s", "u", "r", first).add("s", "u", "r", second)
        assert b.build().lookup("s", "u", "r") is second
        assert first.closed
        assert not second.closed

    def test_add_after_build_fails(self) -> None:
        b = RegistryBuilder(FakeRepo)
        b.build()
        with pytest.raises(RuntimeError):
            b.add_path("s", "u", "r", "/a")

    def test_discovered_names_split_at_first_slash(self) -> None:
        b = RegistryBuilder(FakeRepo)
        b.add_discovered("github.com", [
            FoundRepo("taskie/gitan", "/r/gitan"),
            FoundRepo("group/sub/project", "/r/project"),
        ])
        reg = b.build()
        assert reg.lookup("github.com", "taskie", "gitan").path == "/r/gitan"
        assert reg.lookup("github.com", "group", "sub/project").path == "/r/project"

    @pytest.mark.parametrize("name", ["lonely", "/", "user/", "/repo"])
    def test_discovered_unsplittable_names_skipped(self, name: str) -> None:
        reg = RegistryBuilder(FakeRepo).add_discovered("s", [FoundRepo(name, "/x")]).build()
        assert len(reg) == 0

    def test_discovered_unopenable_skipped(self) -> None:
        reg = RegistryBuilder(FakeRepo).add_discovered("s", [
            FoundRepo("u/bad", "/broken"),
            FoundRepo("u/good", "/ok"),
        ]).build()
        assert reg.repos("s", "u") == ["good"]

    def test_explicit_unopenable_is_config_error(self) -> None:
        b = RegistryBuilder(FakeRepo)
        with pytest.raises(ConfigError):
            b.add_sites({"s": {"u": {"r": "/broken"}}})


class TestBuildRegistry:
    def test_explicit_config_overrides_discovery(self) -> None:
        cfg = Config(
            roots=[RootConfig(site_name="github.com", path="/ghq/github.com")],
            sites={"github.com": {"taskie": {"gitan": "/explicit/gitan"}}},
        )

        def walker(root: RootConfig):
            assert root.path == "/ghq/github.com"
            return [
                FoundRepo("taskie/gitan", "/ghq/github.com/taskie/gitan"),
                FoundRepo("taskie/other", "/ghq/github.com/taskie/other"),
            ]

        reg = build_registry(cfg, walker, repo_opener=FakeRepo)
        assert reg.lookup("github.com", "taskie", "gitan").path == "/explicit/gitan"
        assert reg.lookup("github.com", "taskie", "other").path == "/ghq/github.com/taskie/other"

    def test_roots_ignored_without_walker(self) -> None:
        cfg = Config(roots=[RootConfig(site_name="s", path="/ghq")])
        assert len(build_registry(cfg, repo_opener=FakeRepo)) == 0

    def test_real_repositories(self, sample_repo) -> None:
        cfg = Config(sites={"local": {"me": {"sample": str(sample_repo.path)}}})
        reg = build_registry(cfg)
        assert reg.lookup("local", "me", "sample").resolve_revision("master") == sample_repo.c2

    def test_missing_repository_path(self, tmp_path: Path) -> None:
        cfg = Config(sites={"local": {"me": {"gone": str(tmp_path / "gone")}}})
        with pytest.raises(ConfigError):
            build_registry(cfg)
