"""Gunicorn 生产配置

用法:
  GITAN_CONFIG=configs/gitan.yml gunicorn --config deploy/gunicorn.conf.py gitan.web.app:app
"""

import multiprocessing
import os

# ---------- 网络 ----------
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8080")

# ---------- 并发 ----------
# 仓库句柄无共享可变状态，线程数可以放开
workers = int(os.getenv("GUNICORN_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 8)))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
worker_class = "gthread"
timeout = 120

# ---------- 日志 ----------
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ---------- 进程管理 ----------
graceful_timeout = 30
keepalive = 5
max_requests = 1000
max_requests_jitter = 50


def post_worker_init(worker):  # noqa: ARG001
    """每个 worker 在开始接收请求前加载配置并构建注册表"""
    from gitan.core.config import init_config
    from gitan.services.container import get_container, reset_container
    from gitan.utils.logger import setup_logging

    setup_logging(level=loglevel, json_output=os.getenv("GITAN_LOG_JSON", "") == "1")
    init_config(os.getenv("GITAN_CONFIG", "configs/gitan.yml"))
    reset_container()
    get_container().warm_up()
