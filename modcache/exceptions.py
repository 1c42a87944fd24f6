"""
ModCache 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional

import aiohttp


class ModCacheError(Exception):
    """ModCache 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModCacheError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class InvalidArgument(ModCacheError):
    """参数为空、缺失或取值未知"""

    def _get_default_code(self) -> str:
        return "E101"


class NotFound(ModCacheError):
    """没有匹配的记录或资源"""

    def _get_default_code(self) -> str:
        return "E404"


class FetchError(ModCacheError):
    """网络或远程 API 错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url.with_query(None))

    def _get_default_code(self) -> str:
        return "E200"


class DecodeError(ModCacheError):
    """JSON 或响应信封格式错误"""

    def _get_default_code(self) -> str:
        return "E201"


class InvalidVersionSpec(ModCacheError):
    """依赖约束中的版本号无法解析"""

    def _get_default_code(self) -> str:
        return "E301"


class StorageError(ModCacheError):
    """数据库事务或写入失败"""

    def _get_default_code(self) -> str:
        return "E400"


class DownloadError(ModCacheError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E500"


class ChecksumError(DownloadError):
    """缓存文件校验失败"""

    def _get_default_code(self) -> str:
        return "E501"


class ResolveError(ModCacheError):
    """解析某个模组（或其依赖）时失败"""

    def __init__(
        self,
        message: str,
        mod: str,
        cause: Optional[BaseException] = None,
        code: Optional[str] = None,
    ):
        context: Dict[str, Any] = {"mod": mod}
        if cause is not None:
            context["cause"] = str(cause)
        super().__init__(message, code, context)
        self.mod = mod
        self.cause = cause

    def _get_default_code(self) -> str:
        return "E600"


__all__ = [
    "ModCacheError",
    "ConfigError",
    "InvalidArgument",
    "NotFound",
    "FetchError",
    "DecodeError",
    "InvalidVersionSpec",
    "StorageError",
    "DownloadError",
    "ChecksumError",
    "ResolveError",
]
