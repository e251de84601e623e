# qrshot/models/session.py 会话状态，原先散落在界面里的全局状态
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional
import time

from qrshot.core import config


class Screen(Enum):
    """当前应显示的界面"""
    LOADING = "loading"             # 权限请求中
    NO_PERMISSION = "no_permission" # 缺少必要权限，应用不可用
    SCANNER = "scanner"             # 扫描二维码
    SENDING = "sending"             # 发送中
    PICKER = "picker"               # 选择图片：相册 / 拍照 / 重新扫描


@dataclass
class Permissions:
    """
    启动时请求一次的权限，None 表示还没有结果
    """
    camera: Optional[bool] = None
    library: Optional[bool] = None
    scanner: Optional[bool] = None

    @property
    def resolved(self) -> bool:
        return None not in (self.camera, self.library, self.scanner)

    @property
    def granted(self) -> bool:
        return bool(self.camera and self.library and self.scanner)


@dataclass
class Notification:
    """
    一次发送结束后弹出的提示，一次性
    """
    message: str
    is_error: bool = False
    auto_hide_ms: int = config.snack_auto_hiding_time
    created_at: float = field(default_factory=time.time)

    @classmethod
    def for_result(cls, has_error: bool) -> "Notification":
        message = config.ERROR_MESSAGE if has_error else config.SUCCESS_MESSAGE
        return cls(message=message, is_error=has_error)

    @property
    def expired(self) -> bool:
        return (time.time() - self.created_at) * 1000 >= self.auto_hide_ms


@dataclass
class UpdateInfo:
    """检查到的新版本"""
    current_version: str
    latest_version: str
    title: str = config.UPDATE_TITLE
    prompt: str = config.UPDATE_PROMPT


@dataclass
class SessionState:
    """
    会话内的瞬时状态，不持久化
    """
    ip_address: Optional[str] = None
    base64: Optional[str] = None
    scanned: bool = False
    sending: bool = False
    has_error: bool = False
    show_snack: bool = False
    notification: Optional[Notification] = None
    permissions: Permissions = field(default_factory=Permissions)
    update: Optional[UpdateInfo] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        # base64 可能很大，状态接口只返回长度
        data["base64"] = len(self.base64) if self.base64 else None
        return data
