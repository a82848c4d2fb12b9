"""配置文件统一读取工具

按扩展名分派 YAML / JSON / TOML 解析，统一 encoding="utf-8"、空值保护、大小限制。
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml

from gitan.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# 配置文件最大大小限制 (10MB)，防止恶意大文件导致内存耗尽
MAX_CONFIG_SIZE = 10 * 1024 * 1024

_YAML_SUFFIXES = frozenset((".yml", ".yaml"))


def _parse(p: Path, text: str) -> Any:
    suffix = p.suffix.lower()
    if suffix == ".json":
        return json.loads(text)
    if suffix == ".toml":
        return tomllib.loads(text)
    if suffix not in _YAML_SUFFIXES:
        logger.warning("未知配置文件扩展名 %s，按 YAML 解析", p.suffix)
    return yaml.safe_load(text)


def load_config_file(path: str | Path) -> dict[str, Any]:
    """读取配置文件

    参数:
        path: 配置文件路径，支持 .yml / .yaml / .json / .toml

    返回:
        dict: 解析后的字典。文件不存在、为空、或顶层不是字典时返回空字典

    异常:
        ConfigError: 文件过大，或内容无法解析

    示例:
        >>> cfg = load_config_file("configs/gitan.yml")
        >>> depth = cfg.get("max_depth", 0)
    """
    p = Path(path)
    if not p.exists():
        return {}

    file_size = p.stat().st_size
    if file_size > MAX_CONFIG_SIZE:
        raise ConfigError(
            f"配置文件过大: {p} ({file_size} 字节), "
            f"超过限制 {MAX_CONFIG_SIZE} 字节"
        )

    text = p.read_text(encoding="utf-8")
    try:
        result = _parse(p, text)
    except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        logger.error("解析配置文件失败: %s, 错误: %s", path, e)
        raise ConfigError(f"解析配置文件失败: {path}: {e}") from e

    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            path, type(result).__name__,
        )
        return {}
    return result
