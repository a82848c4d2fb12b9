"""多租户仓库浏览 API Blueprint

所有接口的 rev 通过查询参数传入（默认 HEAD），避免含 "/" 的分支名与路径混淆。
"""

from __future__ import annotations

from flask import Blueprint, Response, request

from gitan.web.responses import bad_request, ok, stream

repos_bp = Blueprint("repos", __name__, url_prefix="/api")

DEFAULT_REV = "HEAD"


def _container():  # type: ignore[no-untyped-def]
    from gitan.services.container import get_container
    return get_container()


def _repo(site: str, user: str, repo: str):  # type: ignore[no-untyped-def]
    return _container().registry.lookup(site, user, repo)


def _rev() -> str:
    return request.args.get("rev", "") or DEFAULT_REV


@repos_bp.route("/sites", methods=["GET"])
def list_sites() -> Response:
    return ok(sites=_container().registry.to_dict())


@repos_bp.route("/<site>/<user>/<repo>/commit", methods=["GET"])
def get_commit(site: str, user: str, repo: str) -> Response:
    commit = _repo(site, user, repo).get_commit(_rev())
    return ok(commit=commit.to_dict())


@repos_bp.route("/<site>/<user>/<repo>/tree", defaults={"path": ""}, methods=["GET"])
@repos_bp.route("/<site>/<user>/<repo>/tree/<path:path>", methods=["GET"])
def get_tree(site: str, user: str, repo: str, path: str) -> Response:
    entries = _repo(site, user, repo).get_tree(path, _rev())
    return ok(path=path, entries=[e.to_dict() for e in entries])


@repos_bp.route("/<site>/<user>/<repo>/find", defaults={"path": ""}, methods=["GET"])
@repos_bp.route("/<site>/<user>/<repo>/find/<path:path>", methods=["GET"])
def find(site: str, user: str, repo: str, path: str) -> tuple[Response, int] | Response:
    raw_depth = request.args.get("max_depth", "")
    if raw_depth:
        try:
            max_depth = int(raw_depth)
        except ValueError:
            return bad_request(f"max_depth 必须是整数: {raw_depth}")
    else:
        max_depth = _container().config.max_depth
    entries = _repo(site, user, repo).find(path, _rev(), max_depth)
    return ok(path=path, max_depth=max_depth, entries=[e.to_dict() for e in entries])


@repos_bp.route("/<site>/<user>/<repo>/stat/<path:path>", methods=["GET"])
def stat_file(site: str, user: str, repo: str, path: str) -> Response:
    _, file_stat = _repo(site, user, repo).get_file_opener(path, _rev())
    return ok(file=file_stat.to_dict())


@repos_bp.route("/<site>/<user>/<repo>/raw/<path:path>", methods=["GET"])
def raw_file(site: str, user: str, repo: str, path: str) -> Response:
    opener, _ = _repo(site, user, repo).get_file_opener(path, _rev())
    return stream(opener(), path)


@repos_bp.route("/<site>/<user>/<repo>/blob/<blob_hash>", methods=["GET"])
def raw_blob(site: str, user: str, repo: str, blob_hash: str) -> Response:
    opener = _repo(site, user, repo).get_blob_opener(blob_hash)
    return stream(opener())
