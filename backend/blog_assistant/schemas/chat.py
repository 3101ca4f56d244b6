"""
聊天、线程、消息、附件 的 Pydantic 请求/响应模型
与聊天界面交互的字段使用 camelCase
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from blog_assistant.core.message_codecs import MessageFormat


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== 对话 ====================

class ChatRequest(BaseModel):
    """POST /api/chat 请求体"""
    messages: list[dict[str, Any]] = Field(..., description="对话消息（parts 或 content 形式）")


# ==================== 线程 ====================

class ThreadResponse(_CamelModel):
    remote_id: str
    external_id: Optional[str] = None
    status: Literal["regular", "archived"]
    title: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ThreadListResponse(BaseModel):
    threads: list[ThreadResponse]


class InitializeThreadRequest(_CamelModel):
    local_id: str = Field(..., min_length=1, max_length=100)


class RenameThreadRequest(BaseModel):
    title: str = Field(..., max_length=200)


class GenerateTitleRequest(BaseModel):
    messages: list[dict[str, Any]] = Field(default_factory=list)


class GenerateTitleResponse(BaseModel):
    title: Optional[str] = None


# ==================== 消息 ====================

class AppendMessageRequest(_CamelModel):
    parent_id: Optional[str] = None
    message: dict[str, Any]
    format: MessageFormat = MessageFormat.AUI_DEFAULT


class MessageEntry(_CamelModel):
    parent_id: Optional[str] = None
    message: dict[str, Any]


class MessageListResponse(BaseModel):
    messages: list[MessageEntry]


# ==================== 附件 ====================

class AttachmentStatus(BaseModel):
    type: Literal["running", "requires-action", "incomplete", "complete"]
    reason: Optional[str] = None
    progress: Optional[int] = None


class Attachment(_CamelModel):
    id: str = Field(..., min_length=1, max_length=64)
    type: Literal["image", "document", "file"]
    name: str = Field(..., min_length=1, max_length=255)
    content_type: str = ""
    status: AttachmentStatus
    content: Optional[list[dict[str, Any]]] = None


class AttachmentUploadResponse(BaseModel):
    """上传过程中的全部状态，最后一个为最终状态"""
    states: list[Attachment]
    attachment: Attachment


# ==================== 语言 ====================

class LocaleRequest(BaseModel):
    locale: str = Field(..., min_length=2, max_length=10)


class LocaleResponse(BaseModel):
    locale: str
