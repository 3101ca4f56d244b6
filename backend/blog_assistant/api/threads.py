"""
聊天线程 / 消息 API
登录用户按账号隔离，匿名用户按会话标识隔离
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_assistant.api.deps import get_chat_identity
from blog_assistant.core.message_codecs import MessageFormat
from blog_assistant.core.thread_adapter import (
    Identity,
    InvalidParentError,
    ThreadHistoryStore,
    ThreadInfo,
    ThreadListAdapter,
    ThreadNotFoundError,
    ThreadStoreError,
)
from blog_assistant.database.connection import get_session_factory
from blog_assistant.schemas.chat import (
    AppendMessageRequest,
    GenerateTitleRequest,
    GenerateTitleResponse,
    InitializeThreadRequest,
    MessageEntry,
    MessageListResponse,
    RenameThreadRequest,
    ThreadListResponse,
    ThreadResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/threads", tags=["聊天线程"])


def get_thread_adapter(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    identity: Identity = Depends(get_chat_identity),
) -> ThreadListAdapter:
    return ThreadListAdapter(session_factory, identity)


def _to_response(info: ThreadInfo) -> ThreadResponse:
    return ThreadResponse(
        remote_id=info.remote_id,
        external_id=info.external_id,
        status=info.status,
        title=info.title,
        updated_at=info.updated_at,
    )


def _raise_http(e: ThreadStoreError):
    if isinstance(e, ThreadNotFoundError):
        raise HTTPException(status_code=404, detail="线程不存在")
    if isinstance(e, InvalidParentError):
        raise HTTPException(status_code=400, detail=str(e))
    raise HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=ThreadListResponse, summary="线程列表")
async def list_threads(adapter: ThreadListAdapter = Depends(get_thread_adapter)):
    """当前身份的线程，最近更新的在前"""
    threads = await adapter.list_threads()
    return ThreadListResponse(threads=[_to_response(t) for t in threads])


@router.post("", response_model=ThreadResponse, status_code=201, summary="创建线程")
async def initialize_thread(
    request: InitializeThreadRequest,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    try:
        return _to_response(await adapter.initialize(request.local_id))
    except ThreadStoreError as e:
        _raise_http(e)


@router.get("/{thread_id}", response_model=ThreadResponse, summary="线程详情")
async def fetch_thread(
    thread_id: str,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    try:
        return _to_response(await adapter.fetch(thread_id))
    except ThreadStoreError as e:
        _raise_http(e)


@router.patch("/{thread_id}", response_model=ThreadResponse, summary="重命名线程")
async def rename_thread(
    thread_id: str,
    request: RenameThreadRequest,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    try:
        await adapter.rename(thread_id, request.title)
        return _to_response(await adapter.fetch(thread_id))
    except ThreadStoreError as e:
        _raise_http(e)


@router.post("/{thread_id}/archive", response_model=ThreadResponse, summary="归档线程")
async def archive_thread(
    thread_id: str,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    try:
        await adapter.archive(thread_id)
        return _to_response(await adapter.fetch(thread_id))
    except ThreadStoreError as e:
        _raise_http(e)


@router.post("/{thread_id}/unarchive", response_model=ThreadResponse, summary="取消归档")
async def unarchive_thread(
    thread_id: str,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    try:
        await adapter.unarchive(thread_id)
        return _to_response(await adapter.fetch(thread_id))
    except ThreadStoreError as e:
        _raise_http(e)


@router.delete("/{thread_id}", status_code=204, summary="删除线程")
async def delete_thread(
    thread_id: str,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    """删除线程及其全部消息，不可恢复"""
    try:
        await adapter.delete(thread_id)
    except ThreadStoreError as e:
        _raise_http(e)


@router.post("/{thread_id}/title", response_model=GenerateTitleResponse, summary="生成标题")
async def generate_title(
    thread_id: str,
    request: GenerateTitleRequest,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    """用第一条用户消息生成线程标题"""
    try:
        title = await adapter.generate_title(thread_id, request.messages)
    except ThreadStoreError as e:
        _raise_http(e)
    return GenerateTitleResponse(title=title)


# ==================== 消息 ====================

@router.get("/{thread_id}/messages", response_model=MessageListResponse, summary="读取消息")
async def load_messages(
    thread_id: str,
    format: MessageFormat = Query(MessageFormat.AUI_DEFAULT, description="消息编码格式"),
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
):
    """按创建时间升序返回指定编码格式的消息"""
    try:
        await adapter.fetch(thread_id)
    except ThreadStoreError as e:
        _raise_http(e)

    store = ThreadHistoryStore(adapter.session_factory, thread_id)
    entries = await store.with_format(format).load()
    return MessageListResponse(
        messages=[
            MessageEntry(parent_id=entry["parentId"], message=entry["message"])
            for entry in entries
        ]
    )


@router.post("/{thread_id}/messages", status_code=201, summary="追加消息")
async def append_message(
    thread_id: str,
    request: AppendMessageRequest,
    adapter: ThreadListAdapter = Depends(get_thread_adapter),
) -> dict[str, Optional[str]]:
    if not request.message.get("id"):
        raise HTTPException(status_code=400, detail="消息缺少 id")
    request.message["id"] = str(request.message["id"])

    try:
        await adapter.fetch(thread_id)
        store = ThreadHistoryStore(adapter.session_factory, thread_id)
        await store.with_format(request.format).append(request.parent_id, request.message)
    except ThreadStoreError as e:
        _raise_http(e)

    return {"id": request.message["id"], "format": request.format.value}
