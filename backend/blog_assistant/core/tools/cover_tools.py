"""
封面图工具
需要管理员权限，权限检查失败直接返回错误，不会发起任何下载
"""

from blog_assistant.core.auth import check_dashboard_access
from blog_assistant.core.cover_image import CoverImageService
from blog_assistant.core.tools.context import ToolContext
from blog_assistant.schemas.tools import (
    CoverImageItem,
    CoverImageResult,
    CoverImagesResult,
    EmptyInput,
    GetMultipleCoverImagesInput,
)

ADMIN_REQUIRED = "没有权限执行此操作，需要管理员权限"


def _service(ctx: ToolContext) -> CoverImageService:
    return CoverImageService(ctx.storage, client_factory=ctx.http_client_factory)


async def generate_cover_image(args: EmptyInput, ctx: ToolContext) -> CoverImageResult:
    if not check_dashboard_access(ctx.user):
        return CoverImageResult(success=False, error=ADMIN_REQUIRED)

    image_url = await _service(ctx).generate_cover_image()
    return CoverImageResult(success=True, image_url=image_url, message="已生成并保存封面图")


async def get_multiple_cover_images(
    args: GetMultipleCoverImagesInput, ctx: ToolContext
) -> CoverImagesResult:
    if not check_dashboard_access(ctx.user):
        return CoverImagesResult(success=False, error=ADMIN_REQUIRED)

    images = await _service(ctx).get_multiple_cover_images(args.count)
    return CoverImagesResult(
        success=True,
        images=[CoverImageItem(url=img.url, index=img.index) for img in images],
        count=len(images),
        message=f"已生成并保存 {len(images)} 张封面图",
    )
