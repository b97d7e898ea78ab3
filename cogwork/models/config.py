"""
Cogwork 运行配置
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from cogwork.exceptions import ConfigError


@dataclass
class CogworkSettings:
    """全局设置，可由配置文件覆盖"""

    # 自动刷新包索引的最短间隔
    automatic_refresh_minutes: float = 20.0
    # 手动刷新包索引的最短间隔
    manual_refresh_seconds: float = 10.0
    # 单次 HTTP 请求超时（秒）
    request_timeout: float = 60.0
    cache_dir: Optional[str] = None
    data_dir: Optional[str] = None

    @property
    def automatic_ttl_seconds(self) -> float:
        return self.automatic_refresh_minutes * 60

    @property
    def manual_ttl_seconds(self) -> float:
        return self.manual_refresh_seconds

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CogworkSettings":
        """从配置字典创建，未知键将被拒绝"""
        data = dict(data or {})
        # 允许使用 [cogwork] 表包裹
        if isinstance(data.get("cogwork"), dict):
            data = dict(data["cogwork"])

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"未知的配置项: {', '.join(unknown)}")

        settings = cls(**data)
        for name in (
            "automatic_refresh_minutes",
            "manual_refresh_seconds",
            "request_timeout",
        ):
            value = getattr(settings, name)
            if not isinstance(value, (int, float)) or value < 0:
                raise ConfigError(f"配置项 {name} 必须是非负数")
        return settings
