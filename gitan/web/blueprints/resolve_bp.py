"""解析器路由 Blueprint

按配置 routes 把 URL 挂载点映射为解析器参数前缀，例如:
  /work/README.md  -> ["work", "README.md"]
  /dev/README.md   -> ["rev", "develop", "README.md"]
  /prod/README.md  -> ["rev", "master", "README.md"]
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from gitan.web.responses import not_found, stream

logger = logging.getLogger(__name__)

resolve_bp = Blueprint("resolve", __name__)


@resolve_bp.route("/<mount>/<path:path>", methods=["GET"])
def resolve(mount: str, path: str) -> tuple[Response, int] | Response:
    from gitan.services.container import get_container
    container = get_container()
    prefix = container.config.routes.get(mount)
    if prefix is None:
        return not_found(f"路由不存在: /{mount}")
    resolver = container.resolver
    if resolver is None:
        return not_found("未配置 project_path")
    opener, _ = resolver.resolve([*prefix, path.lstrip("/")])
    try:
        fileobj = opener()
    except OSError as e:
        logger.info("打开文件失败 /%s/%s: %s", mount, path, e)
        return not_found(f"文件不存在: {path}")
    return stream(fileobj, path)
