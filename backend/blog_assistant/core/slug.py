"""
Slug 生成
将中文或其他文本转换为 URL 友好的别名
"""

import re

_WHITESPACE = re.compile(r"\s+")
# 保留字母数字下划线、常用汉字和连字符
_DISALLOWED = re.compile(r"[^\w一-龥-]", re.ASCII)
_MULTI_HYPHEN = re.compile(r"--+")
_EDGE_HYPHEN = re.compile(r"^-|-$")


def generate_slug(text: str) -> str:
    """
    生成 slug：小写 → 去首尾空白 → 空白转连字符 → 去除非法字符
    → 合并连续连字符 → 去除首尾连字符

    >>> generate_slug("Hello World")
    'hello-world'
    """
    slug = text.lower().strip()
    slug = _WHITESPACE.sub("-", slug)
    slug = _DISALLOWED.sub("", slug)
    slug = _MULTI_HYPHEN.sub("-", slug)
    return _EDGE_HYPHEN.sub("", slug)
