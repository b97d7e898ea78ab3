"""
全局状态 ``{data}/state.json``
"""

from dataclasses import dataclass
from typing import Optional

from cogwork.storage import load_json, save_json


@dataclass
class CogworkState:
    active_game_slug: Optional[str] = None

    def to_dict(self) -> dict:
        return {"ActiveGameSlug": self.active_game_slug}

    @classmethod
    def from_dict(cls, data: dict) -> "CogworkState":
        slug = data.get("ActiveGameSlug")
        if slug is not None and not isinstance(slug, str):
            raise TypeError("'ActiveGameSlug' 必须是字符串或 null")
        return cls(slug)

    @classmethod
    def load(cls, path: str) -> "CogworkState":
        return load_json(path, cls.from_dict, cls)

    def save(self, path: str) -> None:
        save_json(path, self.to_dict())
