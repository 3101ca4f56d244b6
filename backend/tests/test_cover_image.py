"""
封面图服务与封面图工具测试
"""

import io
import os

import httpx
import pytest
from PIL import Image as PILImage

from blog_assistant.config import settings
from blog_assistant.core import cover_image
from blog_assistant.core.cover_image import CoverImageService, build_seed, build_source_url
from blog_assistant.core.tools.cover_tools import ADMIN_REQUIRED
from blog_assistant.core.tools.registry import dispatch


def _png_bytes(mode: str = "RGBA") -> bytes:
    buffer = io.BytesIO()
    PILImage.new(mode, (8, 8)).save(buffer, "PNG")
    return buffer.getvalue()


class _ImageHost:
    """模拟图库：记录请求 URL，返回一张 PNG"""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requested: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(str(request.url))
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        return httpx.Response(200, content=_png_bytes(), headers={"Content-Type": "image/png"})

    def client_factory(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class TestSeeds:
    """随机种子"""

    def test_same_millisecond_seeds_differ(self):
        seeds = {build_seed(1700000000000) for _ in range(50)}
        assert len(seeds) == 50
        assert all(s.startswith("1700000000000-") for s in seeds)

    def test_source_url_shape(self):
        url = build_source_url("123-abc")
        assert url == (
            f"{settings.COVER_IMAGE_BASE_URL}/seed/123-abc/"
            f"{settings.COVER_IMAGE_WIDTH}/{settings.COVER_IMAGE_HEIGHT}"
        )


class TestCoverImageService:
    """下载 + 转存"""

    @pytest.mark.asyncio
    async def test_generate_uploads_jpeg_to_storage(self, storage):
        host = _ImageHost()
        service = CoverImageService(storage, client_factory=host.client_factory)

        url = await service.generate_cover_image()

        prefix = f"http://testserver/storage/{settings.ARTICLE_IMAGES_BUCKET}/covers/"
        assert url.startswith(prefix) and url.endswith(".jpg")
        assert host.requested[0].startswith(f"{settings.COVER_IMAGE_BASE_URL}/seed/")

        key = url[len(f"http://testserver/storage/{settings.ARTICLE_IMAGES_BUCKET}/"):]
        path = os.path.join(storage.root_dir, settings.ARTICLE_IMAGES_BUCKET, key)
        with PILImage.open(path) as stored:
            assert stored.format == "JPEG"
            assert stored.mode == "RGB"

    @pytest.mark.asyncio
    async def test_multiple_distinct_within_same_millisecond(self, storage, monkeypatch):
        """时钟停在同一毫秒时，种子和存储 key 仍然互不相同"""
        monkeypatch.setattr(cover_image, "_now_ms", lambda: 1700000000000)
        host = _ImageHost()
        service = CoverImageService(storage, client_factory=host.client_factory)

        images = await service.get_multiple_cover_images(6)

        assert [img.index for img in images] == [1, 2, 3, 4, 5, 6]
        assert len({img.url for img in images}) == 6
        assert len(set(host.requested)) == 6

    @pytest.mark.asyncio
    async def test_seed_offsets_per_image(self, storage, monkeypatch):
        monkeypatch.setattr(cover_image, "_now_ms", lambda: 1000)
        host = _ImageHost()
        service = CoverImageService(storage, client_factory=host.client_factory)

        await service.get_multiple_cover_images(3)

        for i, url in enumerate(host.requested):
            assert f"/seed/{1000 + i * 100}-" in url

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 7])
    async def test_count_out_of_range(self, storage, count):
        service = CoverImageService(storage, client_factory=_ImageHost().client_factory)
        with pytest.raises(ValueError):
            await service.get_multiple_cover_images(count)

    @pytest.mark.asyncio
    async def test_download_failure(self, storage):
        service = CoverImageService(storage, client_factory=_ImageHost(503).client_factory)
        with pytest.raises(RuntimeError, match="下载图片失败: 503"):
            await service.generate_cover_image()


class TestCoverImageTools:
    """封面图工具的权限检查"""

    @pytest.mark.asyncio
    async def test_non_admin_rejected_without_download(self, tool_ctx, reader_user):
        host = _ImageHost()
        tool_ctx.user = reader_user
        tool_ctx.http_client_factory = host.client_factory

        result = await dispatch("generateCoverImage", "{}", tool_ctx)

        assert result == {"success": False, "error": ADMIN_REQUIRED}
        assert host.requested == []

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, tool_ctx):
        tool_ctx.user = None
        result = await dispatch("getMultipleCoverImages", {"count": 2}, tool_ctx)
        assert result["success"] is False
        assert result["error"] == ADMIN_REQUIRED

    @pytest.mark.asyncio
    async def test_admin_gets_images(self, tool_ctx):
        tool_ctx.http_client_factory = _ImageHost().client_factory

        result = await dispatch("getMultipleCoverImages", {}, tool_ctx)

        assert result["success"] is True
        assert result["count"] == 4
        assert [img["index"] for img in result["images"]] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_count_validated_before_execution(self, tool_ctx):
        host = _ImageHost()
        tool_ctx.http_client_factory = host.client_factory

        result = await dispatch("getMultipleCoverImages", {"count": 10}, tool_ctx)

        assert result["success"] is False
        assert result["error"].startswith("参数校验失败")
        assert host.requested == []
