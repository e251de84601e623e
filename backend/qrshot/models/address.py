# qrshot/models/address.py 接收端地址
from dataclasses import dataclass
import re

from qrshot.core import config

# 二维码里偶尔会带上 ws:// 或 http:// 前缀，只是显示用
_SCHEME_PREFIX = re.compile(r'^\s*(?:wss?|https?)://', re.IGNORECASE)


@dataclass(frozen=True)
class Address:
    """
    扫描得到的接收端地址。除非空之外不做任何校验。
    """
    host: str
    port: int = config.PORT

    @classmethod
    def from_scanned(cls, text: str, port: int = config.PORT) -> "Address":
        """从二维码文本解析出主机名，去掉协议前缀、结尾的 / 和端口"""
        host = _SCHEME_PREFIX.sub('', text or '').strip()
        host = host.split('/', 1)[0]
        # 方括号包裹的 IPv6 地址里也有冒号
        if host.startswith('['):
            host = host[1:].split(']', 1)[0]
        elif host.count(':') == 1:
            host = host.split(':', 1)[0]
        if not host:
            raise ValueError(f"二维码内容不是有效地址: {text!r}")
        return cls(host=host, port=port)

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ':' in self.host else self.host
        return f"{config.WS_SCHEME}://{host}:{self.port}/"

    def __str__(self) -> str:
        return self.host
