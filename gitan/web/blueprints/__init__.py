"""Web Blueprint 集合

- repos_bp.py: 多租户仓库浏览 API (/api)
- resolve_bp.py: 解析器路由挂载 (/<mount>/<path>)
"""

from gitan.web.blueprints.repos_bp import repos_bp
from gitan.web.blueprints.resolve_bp import resolve_bp

__all__ = ["repos_bp", "resolve_bp"]
