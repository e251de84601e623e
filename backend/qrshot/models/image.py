# qrshot/models/image.py 数据类，存储 image 相关的 dataclass
from dataclasses import dataclass, field
import base64


@dataclass
class ImageAsset:
    """
    图片来源（相册或摄像头）返回的原始图片。
    """
    width: int
    height: int
    data: bytes               # 编码后的图片二进制
    format: str               # e.g. "png", "jpeg"
    uri: str = field(default="") # 文件路径或 camera://<index>

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')


@dataclass
class ImagePayload:
    """
    归一化后的图片，只保存在内存中，等待发送。
    """
    width: int
    height: int
    encoded: str              # base64 编码的 PNG
    original_length: int = field(default=0) # 原图 base64 长度

    @property
    def compression_ratio(self) -> float:
        """原图 base64 长度与归一化后长度之比，百分数"""
        return self.original_length / (len(self.encoded) or 1) * 100

    def __len__(self) -> int:
        return len(self.encoded)
