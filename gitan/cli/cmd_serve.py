"""服务命令：serve, sites"""

import click

from gitan.core.config import init_config
from gitan.core.exceptions import GitanError


def register(main: click.Group) -> None:
    """注册服务相关命令"""
    main.add_command(serve)
    main.add_command(sites)


@click.command()
@click.option("--config", "-c", default="configs/gitan.yml", help="配置文件路径 (yml/json/toml)")
@click.option("--host", default="", help="监听地址（覆盖配置）")
@click.option("--port", default=0, type=int, help="监听端口（覆盖配置）")
def serve(config: str, host: str, port: int) -> None:
    """启动 HTTP 服务"""
    from gitan.services.container import reset_container
    from gitan.web.app import run_server
    try:
        cfg = init_config(config)
        reset_container()
        run_server(port=port or cfg.port, host=host or cfg.host)
    except GitanError as e:
        raise click.ClickException(str(e)) from e


@click.command()
@click.option("--config", "-c", default="configs/gitan.yml", help="配置文件路径 (yml/json/toml)")
def sites(config: str) -> None:
    """列出配置中注册的所有仓库"""
    from gitan.services.container import get_container, reset_container
    try:
        init_config(config)
        reset_container()
        tree = get_container().registry.to_dict()
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    if not tree:
        click.echo("没有已注册的仓库。")
        return
    for site, users in tree.items():
        for user, repos in users.items():
            for name in repos:
                click.echo(f"{site}/{user}/{name}")
