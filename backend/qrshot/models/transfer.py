# qrshot/models/transfer.py 发送消息与发送阶段
from dataclasses import dataclass, field
from enum import Enum

from qrshot.core import config


class TransferPhase(Enum):
    """
    一次发送的阶段，完全由传输层回调驱动：
    IDLE -> CONNECTING -> SENDING -> DONE | ERROR -> IDLE
    """
    IDLE = "idle"
    CONNECTING = "connecting"
    SENDING = "sending"
    DONE = "done"
    ERROR = "error"


@dataclass
class TransferMessage:
    """
    线上消息："screenshot,<base64>"。没有长度前缀、序号和校验。
    """
    payload: str
    tag: str = field(default=config.MESSAGE_TAG)
    delimiter: str = field(default=config.MESSAGE_DELIMITER)

    def encode(self) -> str:
        return self.delimiter.join([self.tag, self.payload])

    def __len__(self) -> int:
        return len(self.tag) + len(self.delimiter) + len(self.payload)
