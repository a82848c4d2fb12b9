"""服务容器 — 统一依赖注入

CLI 和 Web 层均通过 get_container() 获取注册表 / 解析器，而非直接构造。

依赖关系（→ 表示依赖）:
  resolver → project
  registry 独立构建

用法:
    container = ServiceContainer()
    registry = container.registry       # 懒加载，首次访问时打开所有仓库
    resolver = container.resolver       # 未配置 project_path 时为 None

    # 显式注入配置 / 发现器
    cfg = Config.from_file("configs/gitan.yml")
    container = ServiceContainer(config=cfg, walker=my_walker)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitan.core.config import Config
    from gitan.core.registry import TenantRegistry, Walker
    from gitan.core.repo import GitRepo
    from gitan.core.resolver import RouteResolver

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器 — 每个实例持有一组共享的注册表和解析器"""

    def __init__(self, config: Config | None = None, walker: Walker | None = None) -> None:
        self._instances: dict[str, object] = {}
        self._lock = threading.Lock()
        if config is None:
            from gitan.core.config import get_config
            config = get_config()
        self._config = config
        self._walker = walker

    @property
    def config(self) -> Config:
        return self._config

    @property
    def registry(self) -> TenantRegistry:
        with self._lock:
            if "registry" not in self._instances:
                from gitan.core.registry import build_registry
                self._instances["registry"] = build_registry(self._config, self._walker)
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def project(self) -> GitRepo | None:
        """project_path 对应的仓库；未配置时为 None"""
        if not self._config.project_path:
            return None
        with self._lock:
            if "project" not in self._instances:
                from gitan.core.repo import GitRepo
                self._instances["project"] = GitRepo(self._config.project_path)
        return self._instances["project"]  # type: ignore[return-value]

    @property
    def resolver(self) -> RouteResolver | None:
        """rev / work / ext 默认解析器；未配置 project_path 时为 None"""
        project = self.project
        if project is None:
            return None
        with self._lock:
            if "resolver" not in self._instances:
                from gitan.core.resolver import default_resolver
                self._instances["resolver"] = default_resolver(
                    self._config.project_path, project, self._config.external_whitelist,
                )
        return self._instances["resolver"]  # type: ignore[return-value]

    def warm_up(self) -> None:
        """在开始服务前完成所有构建"""
        _ = self.registry
        _ = self.resolver

    def close(self) -> None:
        registry = self._instances.get("registry")
        if registry is not None:
            registry.close()  # type: ignore[attr-defined]
        project = self._instances.get("project")
        if project is not None:
            project.close()  # type: ignore[attr-defined]
        self._instances.clear()


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（入口处注入自定义配置 / 发现器时使用）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
