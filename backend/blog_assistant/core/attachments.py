"""
聊天附件
上传流程：running（上传中，progress 0）→ requires-action/composer-send（等待随消息发送）
或 incomplete/error（上传失败）。发送时根据对象存储里的文件解析出公开 URL，
生成 image 或 file 消息片段。

附件存放在 chat-attachments 桶中，key 为 "<附件 ID>.<原扩展名>"。
"""

import logging
import uuid
from typing import AsyncIterator, Optional

from blog_assistant.config import settings
from blog_assistant.core.storage import ObjectStorage, StorageError
from blog_assistant.schemas.chat import Attachment, AttachmentStatus

logger = logging.getLogger(__name__)


class AttachmentError(Exception):
    """附件未上传或已失效"""


def guess_attachment_type(content_type: str) -> str:
    """按 MIME 类型前缀判断附件类型：image / document / file"""
    content_type = content_type or ""
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("text/"):
        return "document"
    if content_type.startswith("application/pdf"):
        return "document"
    return "file"


def attachment_key(attachment_id: str, filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    return f"{attachment_id}.{ext}" if ext else attachment_id


class AttachmentUploader:
    """附件上传 / 发送 / 移除"""

    accept = "*"

    def __init__(self, storage: ObjectStorage, bucket: Optional[str] = None):
        self.storage = storage
        self.bucket = bucket or settings.CHAT_ATTACHMENTS_BUCKET

    async def add(
        self, filename: str, content_type: str, data: bytes
    ) -> AsyncIterator[Attachment]:
        """上传附件，依次产出每个状态"""
        attachment = Attachment(
            id=str(uuid.uuid4()),
            type=guess_attachment_type(content_type),
            name=filename,
            content_type=content_type,
            status=AttachmentStatus(type="running", reason="uploading", progress=0),
        )
        yield attachment

        try:
            self.storage.upload(
                self.bucket,
                attachment_key(attachment.id, filename),
                data,
                content_type=content_type,
                upsert=False,
            )
        except StorageError as e:
            logger.error(f"附件上传失败 ({filename}): {e}")
            yield attachment.model_copy(
                update={"status": AttachmentStatus(type="incomplete", reason="error")}
            )
            return

        yield attachment.model_copy(
            update={"status": AttachmentStatus(type="requires-action", reason="composer-send")}
        )

    async def send(self, attachment: Attachment) -> Attachment:
        """
        完成附件：生成消息片段

        Raises:
            AttachmentError: 附件没有上传成功
        """
        key = attachment_key(attachment.id, attachment.name)
        try:
            uploaded = self.storage.exists(self.bucket, key)
        except StorageError as e:
            raise AttachmentError(str(e)) from e
        if not uploaded:
            raise AttachmentError("Attachment not uploaded")
        url = self.storage.get_public_url(self.bucket, key)

        if attachment.type == "image":
            content = [{"type": "image", "image": url, "filename": attachment.name}]
        else:
            content = [{
                "type": "file",
                "data": url,
                "mimeType": attachment.content_type,
                "filename": attachment.name,
            }]
        return attachment.model_copy(
            update={"status": AttachmentStatus(type="complete"), "content": content}
        )

    async def remove(self, attachment: Attachment) -> None:
        """
        从待发送列表中移除附件

        附件 ID 出现在公开 URL 里，任何人都能拼出 key，所以这里不删除存储中的文件
        """
        key = attachment_key(attachment.id, attachment.name)
        logger.info(f"附件已移除: {self.bucket}/{key}")
