"""gitan 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from gitan import __version__
from gitan.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """gitan - 多租户 Git 仓库只读浏览服务"""
    setup_logging(
        level=os.getenv("GITAN_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("GITAN_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from gitan.cli.cmd_repo import register as _reg_repo  # noqa: E402
from gitan.cli.cmd_serve import register as _reg_serve  # noqa: E402

_reg_serve(main)
_reg_repo(main)
