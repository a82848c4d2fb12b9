"""仓库读取命令：resolve, show, ls-tree, find, commit, cat-blob"""

import json
import sys
from typing import BinaryIO

import click

from gitan.core.exceptions import GitanError
from gitan.core.repo import GitRepo
from gitan.core.resolver import default_resolver


def register(main: click.Group) -> None:
    """注册仓库读取相关命令"""
    main.add_command(resolve)
    main.add_command(show)
    main.add_command(ls_tree)
    main.add_command(find)
    main.add_command(commit)
    main.add_command(cat_blob)


_repo_option = click.option(
    "--repo", "-C", "repo_path", default=".", help="仓库路径（工作区或 .git 目录）",
)
_rev_option = click.option("--rev", "-r", default="HEAD", help="revision（分支/tag/commit）")


def _open_repo(path: str) -> GitRepo:
    try:
        return GitRepo(path)
    except GitanError as e:
        raise click.ClickException(str(e)) from e


def _write_stream(fileobj: BinaryIO) -> None:
    out = sys.stdout.buffer
    with fileobj:
        while chunk := fileobj.read(64 * 1024):
            out.write(chunk)
    out.flush()


@click.command()
@click.argument("project")
@click.argument("args", nargs=-1, required=True)
@click.option("--allow", multiple=True, help="ext 解析器白名单前缀（可多次）")
def resolve(project: str, args: tuple[str, ...], allow: tuple[str, ...]) -> None:
    """通过默认解析器读取文件，例如: gitan resolve . rev master README.md"""
    resolver = default_resolver(project, _open_repo(project), allow)
    try:
        opener, _ = resolver.resolve(list(args))
        fileobj = opener()
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    except OSError as e:
        raise click.ClickException(f"打开文件失败: {e}") from e
    _write_stream(fileobj)


@click.command()
@click.argument("path")
@_repo_option
@_rev_option
@click.option("--stat", "show_stat", is_flag=True, help="只输出文件元信息 (JSON)")
def show(path: str, repo_path: str, rev: str, show_stat: bool) -> None:
    """输出 rev 下文件内容"""
    repo = _open_repo(repo_path)
    try:
        opener, file_stat = repo.get_file_opener(path, rev)
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    if show_stat:
        click.echo(json.dumps(file_stat.to_dict(), ensure_ascii=False))
        return
    _write_stream(opener())


@click.command(name="ls-tree")
@click.argument("path", default="")
@_repo_option
@_rev_option
def ls_tree(path: str, repo_path: str, rev: str) -> None:
    """列出 rev 下目录的直接子项"""
    repo = _open_repo(repo_path)
    try:
        entries = repo.get_tree(path, rev)
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    for e in entries:
        kind = "tree" if e.is_dir else "blob"
        click.echo(f"{e.mode:06o} {kind} {e.hash}\t{e.name}")


@click.command()
@click.argument("path", default="")
@_repo_option
@_rev_option
@click.option("--max-depth", default=0, type=int, help="栈长度上限（<=0 不限制）")
def find(path: str, repo_path: str, rev: str, max_depth: int) -> None:
    """递归列出 rev 下目录的所有后代"""
    repo = _open_repo(repo_path)
    try:
        entries = repo.find(path, rev, max_depth)
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    for e in entries:
        suffix = "/" if e.is_dir else ""
        click.echo(f"{e.hash} {e.name}{suffix}")


@click.command()
@click.argument("rev", default="HEAD")
@_repo_option
def commit(rev: str, repo_path: str) -> None:
    """输出 commit 元信息 (JSON)"""
    repo = _open_repo(repo_path)
    try:
        ci = repo.get_commit(rev)
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(ci.to_dict(), ensure_ascii=False, indent=2))


@click.command(name="cat-blob")
@click.argument("blob_hash")
@_repo_option
def cat_blob(blob_hash: str, repo_path: str) -> None:
    """按内容哈希输出 blob"""
    repo = _open_repo(repo_path)
    try:
        opener = repo.get_blob_opener(blob_hash)
    except GitanError as e:
        raise click.ClickException(str(e)) from e
    _write_stream(opener())
