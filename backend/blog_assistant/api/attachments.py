"""
聊天附件 API
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from blog_assistant.config import settings
from blog_assistant.core.attachments import AttachmentError, AttachmentUploader
from blog_assistant.core.storage import ObjectStorage, get_storage
from blog_assistant.schemas.chat import Attachment, AttachmentUploadResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/attachments", tags=["聊天附件"])


def get_uploader(storage: ObjectStorage = Depends(get_storage)) -> AttachmentUploader:
    return AttachmentUploader(storage)


@router.post("", response_model=AttachmentUploadResponse, summary="上传附件")
async def upload_attachment(
    file: UploadFile = File(...),
    uploader: AttachmentUploader = Depends(get_uploader),
):
    """
    上传附件，返回上传过程中的全部状态：
    running → requires-action（成功，等待发送）或 incomplete（失败）
    """
    data = await file.read()
    if len(data) > settings.ATTACHMENT_MAX_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"附件过大，最大 {settings.ATTACHMENT_MAX_SIZE // (1024 * 1024)}MB",
        )

    states = [
        state
        async for state in uploader.add(
            file.filename or "attachment",
            file.content_type or "application/octet-stream",
            data,
        )
    ]
    return AttachmentUploadResponse(states=states, attachment=states[-1])


@router.post("/send", response_model=Attachment, summary="发送附件")
async def send_attachment(
    attachment: Attachment,
    uploader: AttachmentUploader = Depends(get_uploader),
):
    """把已上传的附件转换为消息片段（image / file）"""
    try:
        return await uploader.send(attachment)
    except AttachmentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/remove", summary="移除附件")
async def remove_attachment(
    attachment: Attachment,
    uploader: AttachmentUploader = Depends(get_uploader),
):
    """移除待发送的附件，已上传的文件保留在存储中"""
    await uploader.remove(attachment)
    return {"removed": True}
