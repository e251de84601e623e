# qrshot/services/permissions.py 启动时的权限检查：摄像头、相册、扫码
import asyncio
import logging
import os
from pathlib import Path
from typing import Union

from qrshot.core import config
from qrshot.models.session import Permissions

logger = logging.getLogger(__name__)


def check_camera(camera_index: int = config.camera_index) -> bool:
    """摄像头能否打开"""
    try:
        import cv2
    except ImportError as e:
        logger.warning("OpenCV 不可用: %s", e)
        return False

    cap = cv2.VideoCapture(camera_index)
    try:
        return bool(cap.isOpened())
    finally:
        cap.release()


def check_library(library_dir: Union[str, Path] = config.LIBRARY_DIR) -> bool:
    """相册目录存在且可读"""
    return os.path.isdir(library_dir) and os.access(library_dir, os.R_OK)


def check_scanner() -> bool:
    """zbar 共享库能否加载"""
    try:
        from pyzbar import pyzbar  # noqa: F401
    except ImportError as e:
        logger.warning("zbar 不可用: %s", e)
        return False
    return True


def check_permissions(camera_index: int = config.camera_index,
                      library_dir: Union[str, Path] = config.LIBRARY_DIR) -> Permissions:
    permissions = Permissions(
        camera=check_camera(camera_index),
        library=check_library(library_dir),
        scanner=check_scanner(),
    )
    logger.info("权限: 摄像头=%s 相册=%s 扫码=%s",
                permissions.camera, permissions.library, permissions.scanner)
    return permissions


async def request_permissions(camera_index: int = config.camera_index,
                              library_dir: Union[str, Path] = config.LIBRARY_DIR) -> Permissions:
    """打开摄像头会阻塞，放到线程池里"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, check_permissions, camera_index, library_dir)
