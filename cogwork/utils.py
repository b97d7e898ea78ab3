from pathlib import Path
from typing import Optional
import json

import toml
import yaml

from cogwork.exceptions import ConfigError, ConfigParseError


def load_config_file(config_path: str) -> Optional[dict]:
    """
    加载配置文件，按后缀选择 toml / json / yaml 解析

    文件不存在时返回 None。
    """
    path = Path(config_path)

    if not path.exists():
        return None

    suffix = path.suffix.lower()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"无法读取配置文件: {e}", context={"path": config_path}
        ) from e

    try:
        if suffix == ".toml":
            data = toml.loads(text)
        elif suffix == ".json":
            data = json.loads(text)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            raise ConfigError(
                f"不支持的配置文件格式: {suffix}", context={"path": config_path}
            )
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            "配置文件顶层必须是表/对象", context={"path": config_path}
        )
    return data
