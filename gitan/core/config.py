"""集中配置管理

支持从 YAML / JSON / TOML 文件加载 + 编程式覆盖。

配置示例 (YAML):
    project_path: /srv/checkout/gitan
    max_depth: 0
    external_whitelist: [/usr/share/doc]
    roots:
      - site_name: github.com
        path: /srv/ghq/github.com
    sites:
      github.com:
        taskie:
          gitan: /srv/repos/gitan/.git
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from gitan.core.exceptions import ConfigError
from gitan.utils.config_io import load_config_file

logger = logging.getLogger(__name__)


def _default_routes() -> dict[str, list[str]]:
    return {
        "work": ["work"],
        "dev": ["rev", "develop"],
        "prod": ["rev", "master"],
    }


@dataclass(frozen=True)
class RootConfig:
    """仓库发现根目录：该目录下发现的仓库归属于 site_name"""

    site_name: str
    path: str


@dataclass
class Config:
    """全局配置"""

    # 解析器
    project_path: str = ""
    max_depth: int = 0
    external_whitelist: list[str] = field(default_factory=list)
    routes: dict[str, list[str]] = field(default_factory=_default_routes)

    # 租户注册表: 发现根目录 + 显式 site -> user -> repo -> path
    roots: list[RootConfig] = field(default_factory=list)
    sites: dict[str, dict[str, dict[str, str]]] = field(default_factory=dict)

    # HTTP
    host: str = "127.0.0.1"
    port: int = 8080

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """从字典构建配置，未知字段放入 extra"""
        known = {f.name for f in cls.__dataclass_fields__.values()} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if "roots" in matched:
            matched["roots"] = _parse_roots(matched["roots"])
        if "sites" in matched:
            matched["sites"] = _parse_sites(matched["sites"])
        if "routes" in matched:
            matched["routes"] = _parse_routes(matched["routes"])
        try:
            cfg = cls(**matched)
            cfg.max_depth = int(cfg.max_depth)
            cfg.port = int(cfg.port)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"配置项类型错误: {e}") from e
        cfg.external_whitelist = [str(p) for p in cfg.external_whitelist or []]
        cfg.extra = extra
        return cfg

    @classmethod
    def from_file(cls, path: str = "configs/gitan.yml") -> Config:
        """从配置文件加载，不存在则返回默认"""
        data = load_config_file(path)
        if not data:
            return cls()
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        from dataclasses import asdict
        return asdict(self)


def _parse_roots(raw: Any) -> list[RootConfig]:
    if not isinstance(raw, list):
        raise ConfigError("roots 必须是列表")
    roots: list[RootConfig] = []
    for item in raw:
        if isinstance(item, RootConfig):
            roots.append(item)
            continue
        if not isinstance(item, dict) or "site_name" not in item or "path" not in item:
            raise ConfigError(f"roots 条目需要 site_name 和 path: {item}")
        roots.append(RootConfig(site_name=str(item["site_name"]), path=str(item["path"])))
    return roots


def _parse_sites(raw: Any) -> dict[str, dict[str, dict[str, str]]]:
    if not isinstance(raw, dict):
        raise ConfigError("sites 必须是 site -> user -> repo -> path 的映射")
    sites: dict[str, dict[str, dict[str, str]]] = {}
    for site, users in raw.items():
        if not isinstance(users, dict):
            raise ConfigError(f"sites.{site} 必须是映射")
        for user, repos in users.items():
            if not isinstance(repos, dict):
                raise ConfigError(f"sites.{site}.{user} 必须是映射")
            sites.setdefault(str(site), {})[str(user)] = {
                str(name): str(path) for name, path in repos.items()
            }
    return sites


def _parse_routes(raw: Any) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        raise ConfigError("routes 必须是 mount -> 参数前缀列表 的映射")
    routes: dict[str, list[str]] = {}
    for mount, prefix in raw.items():
        if not isinstance(prefix, list) or not prefix:
            raise ConfigError(f"routes.{mount} 必须是非空列表")
        routes[str(mount)] = [str(a) for a in prefix]
    return routes


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/gitan.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
