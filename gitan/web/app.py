"""只读仓库浏览 HTTP 服务（基于 Flask）

提供：多租户仓库的 commit / 目录树 / 递归查找 / 文件 / blob 读取，
      以及按配置挂载的解析器路由（工作区、develop、master 等）。

启动方式: gitan serve -c configs/gitan.yml --port 8080
生产部署: gunicorn --config deploy/gunicorn.conf.py gitan.web.app:app
"""

from __future__ import annotations

import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from gitan.core.exceptions import BackingStoreError, GitanError
from gitan.web.blueprints import repos_bp, resolve_bp
from gitan.web.responses import fail

logger = logging.getLogger(__name__)


def _register_error_handlers(flask_app: Flask) -> None:
    @flask_app.errorhandler(GitanError)
    def handle_gitan_error(exc: GitanError):
        """仓库层的所有失败统一返回 404"""
        logger.info("请求失败 [%s]: %s", exc.code, exc)
        if isinstance(exc, BackingStoreError):
            return fail("仓库读取失败", 404)
        return fail(str(exc), 404)

    @flask_app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        """将所有 HTTP 异常统一返回 JSON"""
        return fail(exc.description or exc.name, exc.code or 500)

    @flask_app.errorhandler(Exception)
    def handle_generic_exception(exc: Exception):  # noqa: ARG001
        """捕获未处理异常，返回 500 JSON"""
        logger.exception("未处理的异常")
        return fail("服务器内部错误", 500)


def create_app() -> Flask:
    flask_app = Flask(__name__)
    flask_app.json.sort_keys = False  # type: ignore[attr-defined]
    _register_error_handlers(flask_app)
    flask_app.register_blueprint(repos_bp)
    flask_app.register_blueprint(resolve_bp)
    return flask_app


app = create_app()


def run_server(port: int = 8080, debug: bool = False, host: str = "127.0.0.1") -> None:
    from gitan.services.container import get_container
    # 注册表在开始服务前构建完成
    get_container().warm_up()
    logger.info("gitan 已启动: http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug, threaded=True)
