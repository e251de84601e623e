# qrshot/services/session.py 会话服务：扫码 -> 选图 -> 归一化 -> 发送 的界面状态
from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from qrshot.core import config
from qrshot.models.address import Address
from qrshot.models.image import ImagePayload
from qrshot.models.session import Notification, Permissions, Screen, SessionState, UpdateInfo
from qrshot.protocols.image_source import (
    CameraImageSource,
    ImageSource,
    LibraryImageSource,
    UploadImageSource,
)
from qrshot.protocols.scanner import Scanner, get_scanner
from qrshot.services.normalizer import normalize_image_async
from qrshot.services.permissions import request_permissions
from qrshot.services.transfer import TransferController
from qrshot.services.updates import apply_update, check_for_update
from qrshot.utils.exception import NotReadyError, ScanError, TransferBusyError

logger = logging.getLogger(__name__)


class SessionService:
    """
    一个会话内的全部状态与操作。所有操作都在同一个事件循环里执行，
    阻塞的库调用（扫码、拍照、缩放）放到线程池。
    """

    def __init__(
        self,
        scanner: Optional[Scanner] = None,
        transfer: Optional[TransferController] = None,
        permission_checker: Callable[[], Awaitable[Permissions]] = request_permissions,
        update_checker: Callable[[], Awaitable[Optional[UpdateInfo]]] = check_for_update,
        library_dir: Union[str, Path] = config.LIBRARY_DIR,
        camera_source: Optional[ImageSource] = None,
        port: int = config.PORT,
    ):
        self.state = SessionState()
        self.scanner = scanner or get_scanner()
        self.transfer = transfer or TransferController()
        self.transfer.on_open = self._handle_open
        self.transfer.on_message = self._handle_message
        self.transfer.on_error = self._handle_error
        self.transfer.on_close = self._handle_close

        self.library_dir = library_dir
        self.port = port
        self.camera_source = camera_source or CameraImageSource()
        self._permission_checker = permission_checker
        self._update_checker = update_checker
        self._prepare_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """启动时请求一次权限，并检查更新"""
        self.state.permissions = await self._permission_checker()
        self.state.update = await self._update_checker()

    def current_screen(self) -> Screen:
        permissions = self.state.permissions
        if not permissions.resolved:
            return Screen.LOADING
        if not permissions.granted:
            return Screen.NO_PERMISSION
        if not self.state.ip_address:
            return Screen.SCANNER
        if self.state.sending:
            return Screen.SENDING
        return Screen.PICKER

    def status(self) -> dict:
        """当前界面和状态，通知到时间后自动隐藏"""
        notification = self.state.notification
        if self.state.show_snack and notification is not None and notification.expired:
            self.state.show_snack = False
        return {
            "screen": self.current_screen().value,
            "transfer_phase": self.transfer.phase.value,
            **self.state.to_dict(),
        }

    # 扫码
    def handle_barcode_scanned(self, data: str) -> bool:
        """
        扫描结果回调，扫到一次之后忽略后续结果，直到重新扫描

        Returns:
            bool: 本次结果是否被采用
        """
        if self.state.scanned:
            return False
        try:
            address = Address.from_scanned(data)
        except ValueError as e:
            raise ScanError(str(e)) from e
        self.state.scanned = True
        self.state.ip_address = address.host
        logger.info("接收端地址: %s", address.url)
        return True

    async def scan_image(self, image_bytes: bytes) -> Optional[str]:
        """从一张图片里扫二维码，已经扫过时返回 None"""
        self._require_permissions()
        if self.state.scanned:
            return None
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(None, self.scanner.decode, image_bytes)
        self.handle_barcode_scanned(text)
        return self.state.ip_address

    async def scan_camera(self, camera_index: int = config.camera_index) -> Optional[str]:
        """用摄像头实时扫码，已经扫过时返回 None"""
        self._require_permissions()
        if self.state.scanned:
            return None
        loop = asyncio.get_running_loop()
        text = await loop.run_in_executor(None, self.scanner.scan_camera, camera_index, config.scan_max_frames)
        self.handle_barcode_scanned(text)
        return self.state.ip_address

    def handle_rescan(self) -> None:
        """无条件清空地址和图片"""
        if self.transfer.busy:
            logger.info("重新扫描时仍有发送进行中")
        self.transfer.reset()
        self.state.base64 = None
        self.state.ip_address = None
        self.state.scanned = False
        self.state.sending = False

    # 选图与发送
    async def pick_image(self, path: Optional[Union[str, Path]] = None) -> Optional[ImagePayload]:
        """从相册（磁盘）选一张图片，path 为空表示取消"""
        return await self.send_from(LibraryImageSource(path, library_dir=self.library_dir))

    async def upload_image(self, data: bytes, filename: str = "") -> Optional[ImagePayload]:
        return await self.send_from(UploadImageSource(data, filename))

    async def take_photo(self) -> Optional[ImagePayload]:
        return await self.send_from(self.camera_source)

    async def send_from(self, source: ImageSource) -> Optional[ImagePayload]:
        """
        取图 -> 归一化 -> 后台发送。用户取消时返回 None。

        Raises:
            NotReadyError: 还没有扫描地址或缺少权限
            TransferBusyError: 已有图片正在处理或发送
        """
        self._require_permissions()
        if not self.state.ip_address:
            raise NotReadyError("请先扫描二维码")
        if self._prepare_lock.locked() or self.state.sending or self.transfer.busy:
            raise TransferBusyError("已有图片正在发送")

        async with self._prepare_lock:
            loop = asyncio.get_running_loop()
            asset = await loop.run_in_executor(None, source.acquire)
            if asset is None:
                return None
            payload = await normalize_image_async(asset)

            # 地址可能在处理图片期间被重新扫描清空
            if not self.state.ip_address:
                raise NotReadyError("地址已被清空")
            self.state.base64 = payload.encoded
            self.state.sending = True
            self.transfer.start(Address(self.state.ip_address, self.port), payload)
        return payload

    def cancel(self) -> None:
        """只改本地状态，不中断正在进行的发送"""
        self.transfer.cancel()
        self.state.sending = False
        self.state.base64 = None

    def dismiss_notification(self) -> None:
        self.state.show_snack = False

    async def install_update(self) -> bool:
        if self.state.update is None:
            return False
        installed = await apply_update(self.state.update)
        if installed:
            self.state.update = None
        return installed

    async def close(self) -> None:
        await self.transfer.close()

    # 传输层回调
    def _handle_open(self) -> None:
        self.state.has_error = False

    def _handle_message(self, message) -> None:
        logger.info("接收端消息: %.200s", message)

    def _handle_error(self, error: BaseException) -> None:
        self.state.has_error = True

    def _handle_close(self) -> None:
        self.state.base64 = None
        self.state.sending = False
        self.state.notification = Notification.for_result(self.state.has_error)
        self.state.show_snack = True

    def _require_permissions(self) -> None:
        permissions = self.state.permissions
        if not permissions.resolved:
            raise NotReadyError("权限请求尚未完成")
        if not permissions.granted:
            raise NotReadyError("应用没有运行所需的权限")
