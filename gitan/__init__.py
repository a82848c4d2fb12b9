"""gitan - 多租户 Git 仓库只读浏览服务"""

__version__ = "0.3.0"
