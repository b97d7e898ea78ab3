"""
Cogwork 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class CogworkError(Exception):
    """Cogwork 基础异常类"""

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


class ConfigError(CogworkError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class NoPackageSourceError(ConfigError):
    """游戏没有配置任何包来源"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(CogworkError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class SourceFetchError(APIError):
    """包索引获取错误（格式不符、解压失败等）"""

    def _get_default_code(self) -> str:
        return "E201"


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class ResolutionError(CogworkError):
    """依赖引用解析错误"""

    def _get_default_code(self) -> str:
        return "E300"


class InvalidReferenceError(ResolutionError):
    """引用字符串格式无效"""

    def _get_default_code(self) -> str:
        return "E301"


class PackageNotFoundError(ResolutionError):
    """引用的包不存在"""

    def _get_default_code(self) -> str:
        return "E302"


class VersionNotFoundError(ResolutionError):
    """引用的包版本不存在"""

    def _get_default_code(self) -> str:
        return "E303"


class UnsupportedSourceError(ResolutionError):
    """引用中的来源标签无法识别"""

    def _get_default_code(self) -> str:
        return "E304"


class ModListError(CogworkError):
    """模组列表相关错误"""

    def _get_default_code(self) -> str:
        return "E400"


class ProfileNotFoundError(ModListError):
    """配置档案不存在"""

    def _get_default_code(self) -> str:
        return "E401"


__all__ = [
    # 基础异常
    "CogworkError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "NoPackageSourceError",
    # API 异常
    "APIError",
    "SourceFetchError",
    "APINotFoundError",
    # 解析异常
    "ResolutionError",
    "InvalidReferenceError",
    "PackageNotFoundError",
    "VersionNotFoundError",
    "UnsupportedSourceError",
    # 模组列表异常
    "ModListError",
    "ProfileNotFoundError",
]
