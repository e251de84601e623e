# qrshot/services/normalizer.py 图片归一化：最长边缩到 MAX_DIMENSION 以内并重新编码
import asyncio
import base64
import io
import logging
from typing import Tuple

from PIL import Image, ImageOps

from qrshot.core import config
from qrshot.models.image import ImageAsset, ImagePayload
from qrshot.utils.exception import ImageSourceError

logger = logging.getLogger(__name__)

# PNG 能直接保存的模式，其余（如 CMYK）先转 RGB
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


def target_size(width: int, height: int, max_dimension: int = config.MAX_DIMENSION) -> Tuple[int, int]:
    """
    计算缩放后的尺寸，保持宽高比。
    宽高相等时按高度处理；最长边不超过 max_dimension 时尺寸不变。
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"图片尺寸无效: {width}x{height}")

    if width > height:
        if width <= max_dimension:
            return width, height
        return max_dimension, max(1, round(height * max_dimension / width))

    if height <= max_dimension:
        return width, height
    return max(1, round(width * max_dimension / height)), max_dimension


def _compress_level(quality: float = config.compress) -> int:
    """把 [0, 1] 的质量换算为 PNG 的 zlib 压缩等级 [0, 9]"""
    quality = min(max(quality, 0.0), 1.0)
    return round((1 - quality) * 9)


def normalize_image(asset: ImageAsset, max_dimension: int = config.MAX_DIMENSION) -> ImagePayload:
    """
    缩放并重新编码为 PNG，返回 base64 文本。

    Args:
        asset: 图片来源返回的原图
        max_dimension: 最长边上限

    Returns:
        ImagePayload: 归一化后的图片
    """
    try:
        with Image.open(io.BytesIO(asset.data)) as img:
            img = ImageOps.exif_transpose(img)
            width, height = target_size(img.width, img.height, max_dimension)
            if (width, height) != img.size:
                img = img.resize((width, height), Image.LANCZOS)
            if img.mode not in _PNG_MODES:
                img = img.convert("RGB")

            buffer = io.BytesIO()
            img.save(buffer, format=config.OUTPUT_FORMAT, optimize=False,
                     compress_level=_compress_level())
    except OSError as e:
        raise ImageSourceError(f"图片归一化失败: {e}") from e

    payload = ImagePayload(
        width=width,
        height=height,
        encoded=base64.b64encode(buffer.getvalue()).decode('ascii'),
        original_length=len(asset.base64),
    )
    logger.info("压缩: %.1f %% (%dx%d -> %dx%d)",
                payload.compression_ratio, asset.width, asset.height, width, height)
    return payload


async def normalize_image_async(asset: ImageAsset, max_dimension: int = config.MAX_DIMENSION) -> ImagePayload:
    """在默认线程池中执行 normalize_image，避免阻塞事件循环"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, normalize_image, asset, max_dimension)
