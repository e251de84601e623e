# qrshot/protocols/scanner.py 二维码扫描接口与 pyzbar 实现
import io
import logging
from typing import Protocol, Optional, Any

from PIL import Image, UnidentifiedImageError

from qrshot.core import config
from qrshot.utils.exception import ScanError

logger = logging.getLogger(__name__)

__all__ = [
    "Scanner",
    "PyzbarScanner",
    "get_scanner",
]


class Scanner(Protocol):
    """
    Scanner 协议：把一张含二维码的图片解码为文本，文本即接收端地址。
    """
    def decode(self, image_bytes: bytes) -> str: ...

    def decode_frame(self, frame: Any) -> Optional[str]: ...

    def scan_camera(self, camera_index: int, max_frames: int) -> str: ...


class PyzbarScanner:
    """
    基于 zbar 的二维码解码，只识别 QR 码，取第一个结果。
    """

    def decode(self, image_bytes: bytes) -> str:
        """
        解码一张图片文件的二进制内容

        Raises:
            ScanError: 图片无法打开或其中没有二维码
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ScanError(f"无法读取二维码图片: {e}") from e

        text = self._decode(image.convert("L"))
        if text is None:
            raise ScanError("图片中没有找到二维码")
        return text

    def decode_frame(self, frame: Any) -> Optional[str]:
        """解码摄像头的一帧（numpy 数组），没有二维码时返回 None"""
        return self._decode(frame)

    def scan_camera(self, camera_index: int = config.camera_index,
                    max_frames: int = config.scan_max_frames) -> str:
        """
        从摄像头逐帧扫码，直到扫到或读满 max_frames 帧

        Raises:
            ScanError: 摄像头无法打开或没有扫到二维码
        """
        import cv2

        cap = cv2.VideoCapture(camera_index)
        try:
            if not cap.isOpened():
                raise ScanError(f"无法打开摄像头 {camera_index}")
            for _ in range(max_frames):
                ret, frame = cap.read()
                if not ret:
                    break
                text = self.decode_frame(frame)
                if text:
                    return text
        finally:
            cap.release()
        raise ScanError("摄像头画面中没有找到二维码")

    def _decode(self, image: Any) -> Optional[str]:
        # zbar 共享库在导入时加载，扫描权限检查同样依赖这一步
        from pyzbar.pyzbar import decode, ZBarSymbol

        for symbol in decode(image, symbols=[ZBarSymbol.QRCODE]):
            text = symbol.data.decode("utf-8", errors="replace").strip()
            if text:
                logger.info("扫描到二维码: %s", text)
                return text
        return None


# 全局扫描器实例
_scanner_instance: Optional[PyzbarScanner] = None


def get_scanner() -> PyzbarScanner:
    global _scanner_instance
    if _scanner_instance is None:
        _scanner_instance = PyzbarScanner()
    return _scanner_instance
