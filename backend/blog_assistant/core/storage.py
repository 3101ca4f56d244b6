"""
对象存储
按 bucket/key 组织的本地文件存储，通过 /storage 静态目录对外提供访问
"""

import logging
import os
from typing import Optional

from blog_assistant.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """存储操作失败"""


class ObjectStorage:
    """本地对象存储"""

    def __init__(self, root_dir: str, public_base_url: str):
        self.root_dir = root_dir
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, key: str) -> str:
        """解析 bucket/key 到本地路径，拒绝越界路径"""
        if not bucket or not key or key.startswith("/") or "\\" in key:
            raise StorageError(f"非法的存储路径: {bucket}/{key}")
        bucket_dir = os.path.abspath(os.path.join(self.root_dir, bucket))
        path = os.path.abspath(os.path.join(bucket_dir, key))
        if not path.startswith(bucket_dir + os.sep):
            raise StorageError(f"非法的存储路径: {bucket}/{key}")
        return path

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> str:
        """
        上传对象

        Returns:
            存储 key

        Raises:
            StorageError: 对象已存在（upsert=False）或写入失败
        """
        path = self._resolve(bucket, key)
        if os.path.exists(path) and not upsert:
            raise StorageError(f"对象已存在: {bucket}/{key}")

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"写入对象失败: {e}") from e

        logger.info(
            f"对象已上传: {bucket}/{key} ({len(data)} bytes, {content_type or 'unknown'})"
        )
        return key

    def exists(self, bucket: str, key: str) -> bool:
        return os.path.isfile(self._resolve(bucket, key))

    def remove(self, bucket: str, key: str) -> bool:
        """删除对象，不存在返回 False"""
        path = self._resolve(bucket, key)
        if not os.path.isfile(path):
            return False
        os.remove(path)
        return True

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{key}"


def get_storage() -> ObjectStorage:
    """FastAPI 依赖注入：获取对象存储"""
    return storage


# 全局单例
storage = ObjectStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_URL)
