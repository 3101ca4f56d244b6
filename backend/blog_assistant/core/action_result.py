"""
数据操作结果
业务层对可预期的失败（未登录、不存在、约束冲突）返回 error 而非抛出异常
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ActionResult:
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(data=None, error=error)


UNAUTHORIZED = "Unauthorized"
