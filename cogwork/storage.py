"""
JSON 持久化

写入时格式化输出；读取时容忍尾随逗号；任何解析错误都记录日志后回退到默认值，
从不向调用方抛出。
"""

import json
import os
import re
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")

# 匹配字符串字面量或位于 ] / } 之前的逗号
_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[\]}])')


def strip_trailing_commas(text: str) -> str:
    """去掉 JSON 文本中的尾随逗号，字符串内容保持不变"""
    return _TRAILING_COMMA.sub(
        lambda m: m.group(1) if m.group(1) is not None else m.group(2), text
    )


def loads_lenient(text: str) -> Any:
    return json.loads(strip_trailing_commas(text))


def dumps_pretty(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def load_json(
    path: str,
    parse: Callable[[Any], T],
    default: Callable[[], T],
) -> T:
    """
    读取 JSON 文件并转换

    Args:
        path: 文件路径
        parse: 把解析后的 JSON 转换成目标对象，可抛出 ValueError / KeyError / TypeError
        default: 文件不存在或内容损坏时使用的默认值工厂

    Returns:
        转换后的对象或默认值
    """
    if not os.path.isfile(path):
        return default()

    try:
        with open(path, "r", encoding="utf-8") as f:
            return parse(loads_lenient(f.read()))
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"读取文件失败 '{path}': {e}")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"解析 JSON 文件失败 '{path}': {e}")
    return default()


def save_json(path: str, data: Any) -> None:
    """格式化写入 JSON，必要时创建父目录"""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dumps_pretty(data))


def read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"读取文件失败 '{path}': {e}")
        return None
