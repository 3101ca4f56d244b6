"""
聊天消息编码格式
每条消息存储时带 format 标记，同一线程里可以并存多种编码；
读取时只解码与当前编码格式一致的行。

- aui/default           聊天界面默认格式：{role, content}
- ai-sdk/v5            AI SDK v5 格式：{role, parts}，会丢弃 file 片段
- ai-sdk/v5-with-files AI SDK v5 格式：{role, parts}，保留所有片段（含附件）
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class MessageFormat(str, Enum):
    AUI_DEFAULT = "aui/default"
    AI_SDK_V5 = "ai-sdk/v5"
    AI_SDK_V5_WITH_FILES = "ai-sdk/v5-with-files"


class MessageCodec(ABC):
    """编码器基类：encode 写入前转换，decode 读取后还原"""

    format: MessageFormat

    def get_id(self, message: dict) -> str:
        return message["id"]

    @abstractmethod
    def encode(self, message: dict) -> dict:
        ...

    @abstractmethod
    def decode(self, message_id: str, content: Any) -> dict:
        ...


class AuiDefaultCodec(MessageCodec):
    format = MessageFormat.AUI_DEFAULT

    def encode(self, message: dict) -> dict:
        return {
            "role": message.get("role"),
            "content": message.get("content", []),
            "metadata": message.get("metadata", {}),
        }

    def decode(self, message_id: str, content: Any) -> dict:
        content = content or {}
        return {
            "id": message_id,
            "role": content.get("role"),
            "content": content.get("content", []),
            "metadata": content.get("metadata", {}),
            "status": {"type": "complete"},
        }


class AiSdkV5Codec(MessageCodec):
    format = MessageFormat.AI_SDK_V5

    def _keep(self, part: dict) -> bool:
        return part.get("type") != "file"

    def encode(self, message: dict) -> dict:
        return {
            "role": message.get("role"),
            "parts": [p for p in message.get("parts", []) if self._keep(p)],
        }

    def decode(self, message_id: str, content: Any) -> dict:
        content = content or {}
        return {
            "id": message_id,
            "role": content.get("role"),
            "parts": content.get("parts", []),
        }


class AiSdkV5WithFilesCodec(AiSdkV5Codec):
    """与 ai-sdk/v5 相同，但不过滤 file 片段"""

    format = MessageFormat.AI_SDK_V5_WITH_FILES

    def _keep(self, part: dict) -> bool:
        return True


CODECS: dict[MessageFormat, MessageCodec] = {
    codec.format: codec
    for codec in (AuiDefaultCodec(), AiSdkV5Codec(), AiSdkV5WithFilesCodec())
}


def get_codec(format_tag: str | MessageFormat) -> Optional[MessageCodec]:
    """按格式标记查找编码器，未知格式返回 None"""
    try:
        return CODECS[MessageFormat(format_tag)]
    except ValueError:
        return None
