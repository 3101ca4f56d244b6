"""
封面图服务
从公共随机图库（Picsum）下载图片并转存到博客自己的对象存储，
只返回自有存储的 URL，不直接引用外部图片地址。
"""

import io
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from PIL import Image as PILImage

from blog_assistant.config import settings
from blog_assistant.core.storage import ObjectStorage

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
MIN_COVER_COUNT = 1
MAX_COVER_COUNT = 6
DEFAULT_COVER_COUNT = 4
# 批量生成时每张图片的时间戳偏移（毫秒）
SEED_OFFSET_MS = 100


def _random_suffix(length: int) -> str:
    return "".join(random.choices(_BASE36, k=length))


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_seed(timestamp_ms: int) -> str:
    """随机种子：时间戳 + 随机后缀，同一毫秒内也不会重复"""
    return f"{timestamp_ms}-{_random_suffix(6)}"


def build_source_url(seed: str) -> str:
    return (
        f"{settings.COVER_IMAGE_BASE_URL}/seed/{seed}/"
        f"{settings.COVER_IMAGE_WIDTH}/{settings.COVER_IMAGE_HEIGHT}"
    )


def build_storage_key(timestamp_ms: int) -> str:
    return f"covers/{timestamp_ms}-{_random_suffix(6)}.jpg"


@dataclass
class CoverImage:
    url: str
    index: int


def _default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=60.0, follow_redirects=True, trust_env=False)


class CoverImageService:
    """封面图下载 + 转存"""

    def __init__(
        self,
        storage: ObjectStorage,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.storage = storage
        self._client_factory = client_factory or _default_client

    @staticmethod
    def _normalize_jpeg(data: bytes) -> bytes:
        """Pillow 校验图片，非 RGB 图片转为 JPEG；校验失败原样返回"""
        try:
            img = PILImage.open(io.BytesIO(data))
            if img.mode != "RGB":
                buffer = io.BytesIO()
                img.convert("RGB").save(buffer, "JPEG", quality=85)
                logger.info(f"封面图已转换为 JPEG ({img.width}x{img.height}, 原模式 {img.mode})")
                return buffer.getvalue()
            logger.info(f"封面图校验通过 ({img.width}x{img.height})")
        except Exception as e:
            logger.warning(f"Pillow 验证失败: {e}")
        return data

    async def download_and_upload(self, source_url: str) -> str:
        """
        下载图片并上传到对象存储

        Returns:
            对象存储中的公开 URL

        Raises:
            RuntimeError: 下载失败
            StorageError: 上传失败
        """
        async with self._client_factory() as client:
            response = await client.get(
                source_url,
                headers={"User-Agent": "Mozilla/5.0 (compatible; BlogAssistant/1.0)"},
            )
        if not response.is_success:
            raise RuntimeError(f"下载图片失败: {response.status_code}")

        data = self._normalize_jpeg(response.content)
        key = build_storage_key(_now_ms())
        self.storage.upload(
            settings.ARTICLE_IMAGES_BUCKET,
            key,
            data,
            content_type="image/jpeg",
            upsert=False,
        )
        return self.storage.get_public_url(settings.ARTICLE_IMAGES_BUCKET, key)

    async def generate_cover_image(self) -> str:
        """生成一张随机封面图，返回公开 URL"""
        seed = build_seed(_now_ms())
        url = await self.download_and_upload(build_source_url(seed))
        logger.info(f"封面图已生成: seed={seed} -> {url}")
        return url

    async def get_multiple_cover_images(
        self, count: int = DEFAULT_COVER_COUNT
    ) -> list[CoverImage]:
        """
        顺序生成多张封面图，种子时间戳逐张偏移，index 从 1 开始

        Raises:
            ValueError: count 不在 1-6 之间
        """
        if not MIN_COVER_COUNT <= count <= MAX_COVER_COUNT:
            raise ValueError(f"图片数量必须在 {MIN_COVER_COUNT}-{MAX_COVER_COUNT} 之间")

        base_ms = _now_ms()
        images: list[CoverImage] = []
        for i in range(count):
            seed = build_seed(base_ms + i * SEED_OFFSET_MS)
            url = await self.download_and_upload(build_source_url(seed))
            images.append(CoverImage(url=url, index=i + 1))
        return images
