"""统一异常体系

所有业务异常继承 GitanError，调用方按类型区分失败原因。
Web 层据此统一映射为 404 + JSON 错误信息，CLI 层据此输出友好提示。

所有异常均为终态：表示请求非法或对象确定不存在，内部从不重试。
"""

from __future__ import annotations


class GitanError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(GitanError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


# =========================================================================
# 对象不存在
# =========================================================================


class NotFoundError(GitanError):
    """请求的对象不存在"""

    code = "NOT_FOUND"


class RevisionNotFoundError(NotFoundError):
    """revision 无法解析为 commit"""

    code = "REVISION_NOT_FOUND"


class PathNotFoundError(NotFoundError):
    """路径在该 revision 下不存在（或不是期望的类型）"""

    code = "PATH_NOT_FOUND"


class IsADirectoryError(NotFoundError):  # noqa: A001
    """请求文件内容，但路径指向目录"""

    code = "IS_A_DIRECTORY"


class BlobNotFoundError(NotFoundError):
    """按内容哈希找不到 blob"""

    code = "BLOB_NOT_FOUND"


class TenantNotFoundError(NotFoundError):
    """租户注册表中缺少某一级 (site / user / repo)"""

    code = "TENANT_NOT_FOUND"
    level: str = ""

    def __init__(self, name: str) -> None:
        super().__init__(f"{self.level} 不存在: {name}")
        self.name = name


class SiteNotFoundError(TenantNotFoundError):
    level = "site"


class UserNotFoundError(TenantNotFoundError):
    level = "user"


class RepoNotFoundError(TenantNotFoundError):
    level = "repo"


# =========================================================================
# 解析器
# =========================================================================


class ResolveError(GitanError):
    """解析器参数或路径校验失败"""

    code = "RESOLVE_ERROR"


class ArityError(ResolveError):
    """解析器参数个数不符"""

    code = "ARITY_ERROR"


class InvalidPathError(ResolveError):
    """路径逃逸出项目根目录"""

    code = "INVALID_PATH"


class NotWhitelistedError(ResolveError):
    """外部路径不在白名单内"""

    code = "NOT_WHITELISTED"


class UnknownSchemeError(ResolveError):
    """路由解析器中不存在该 scheme"""

    code = "UNKNOWN_SCHEME"


# =========================================================================
# 底层存储
# =========================================================================


class BackingStoreError(GitanError):
    """底层对象库打开或解码失败"""

    code = "BACKING_STORE_ERROR"


class CommitLoadError(BackingStoreError):
    """commit 对象或其文件列表加载失败"""

    code = "COMMIT_LOAD_ERROR"
