"""Web 层统一响应辅助函数

所有 JSON 响应统一为 {"ok": bool, ...} 信封，失败时附带 "error" 字符串。
"""

from __future__ import annotations

import mimetypes
import posixpath
from typing import BinaryIO

from flask import Response, jsonify, send_file


def ok(**data: object) -> Response:
    """成功响应"""
    return jsonify(ok=True, **data)


def fail(message: str, status: int) -> tuple[Response, int]:
    """失败响应"""
    return jsonify(ok=False, error=message), status


def not_found(message: str) -> tuple[Response, int]:
    """资源不存在"""
    return fail(message, 404)


def bad_request(message: str) -> tuple[Response, int]:
    """请求参数错误"""
    return fail(message, 400)


def guess_mimetype(path: str) -> str:
    """按扩展名推断 MIME 类型，未知时为 application/octet-stream"""
    mime, _ = mimetypes.guess_type(posixpath.basename(path))
    return mime or "application/octet-stream"


def stream(fileobj: BinaryIO, path: str = "") -> Response:
    """流式返回字节内容，响应结束时关闭 fileobj"""
    return send_file(fileobj, mimetype=guess_mimetype(path), conditional=False)
