# qrshot/protocols/image_source.py 图片来源接口：相册（文件）与摄像头
import io
import logging
from pathlib import Path
from typing import Protocol, Optional, Union

from PIL import Image, UnidentifiedImageError

from qrshot.core import config
from qrshot.models.image import ImageAsset
from qrshot.utils.exception import ImageSourceError

logger = logging.getLogger(__name__)

__all__ = [
    "ImageSource",
    "LibraryImageSource",
    "CameraImageSource",
    "UploadImageSource",
    "asset_from_bytes",
]


class ImageSource(Protocol):
    """
    ImageSource 协议：返回一张图片，用户取消时返回 None。
    注意这里是阻塞调用，会话层负责放到线程池里执行。
    """
    def acquire(self) -> Optional[ImageAsset]: ...


def asset_from_bytes(data: bytes, uri: str = "") -> ImageAsset:
    """从图片文件的二进制内容构造 ImageAsset"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            fmt = (img.format or "png").lower()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageSourceError(f"无法识别的图片 {uri or ''}: {e}") from e
    return ImageAsset(width=width, height=height, data=data, format=fmt, uri=uri)


class LibraryImageSource:
    """
    相册：从磁盘读取一张图片。path 为空表示用户取消了选择。
    """

    def __init__(self, path: Optional[Union[str, Path]] = None,
                 library_dir: Union[str, Path] = config.LIBRARY_DIR):
        self.library_dir = Path(library_dir)
        self.path = Path(path) if path else None

    def resolve(self) -> Optional[Path]:
        if self.path is None:
            return None
        # 相对路径按相册目录解析
        return self.path if self.path.is_absolute() else self.library_dir / self.path

    def acquire(self) -> Optional[ImageAsset]:
        path = self.resolve()
        if path is None:
            logger.info("用户取消了图片选择")
            return None
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ImageSourceError(f"读取图片失败 {path}: {e}") from e
        return asset_from_bytes(data, uri=str(path))


class CameraImageSource:
    """
    摄像头：用 OpenCV 拍一张照片，编码为 PNG。
    """

    def __init__(self, camera_index: int = config.camera_index,
                 warmup_frames: int = config.camera_warmup_frames):
        self.camera_index = camera_index
        self.warmup_frames = warmup_frames

    def acquire(self) -> Optional[ImageAsset]:
        import cv2

        cap = cv2.VideoCapture(self.camera_index)
        try:
            if not cap.isOpened():
                raise ImageSourceError(f"无法打开摄像头 {self.camera_index}")

            frame = None
            for _ in range(self.warmup_frames + 1):
                ret, frame = cap.read()
                if not ret:
                    raise ImageSourceError("摄像头读取失败")

            ok, buffer = cv2.imencode('.png', frame)
            if not ok:
                raise ImageSourceError("照片编码失败")
        finally:
            cap.release()

        height, width = frame.shape[:2]
        logger.info("拍摄完成: %dx%d", width, height)
        return ImageAsset(
            width=width,
            height=height,
            data=buffer.tobytes(),
            format="png",
            uri=f"camera://{self.camera_index}",
        )


class UploadImageSource:
    """
    通过控制接口上传的图片，内容为空表示用户取消了选择。
    """

    def __init__(self, data: bytes, filename: str = ""):
        self.data = data
        self.filename = filename

    def acquire(self) -> Optional[ImageAsset]:
        if not self.data:
            logger.info("上传内容为空，视为取消")
            return None
        return asset_from_bytes(self.data, uri=self.filename)
