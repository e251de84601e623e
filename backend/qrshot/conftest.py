# 测试公共 fixture：生成图片、本地 websocket 接收端
import asyncio
import io
import socket

import pytest
import pytest_asyncio
import websockets
from PIL import Image

from qrshot.models.session import Permissions


def make_image_bytes(width: int, height: int, mode: str = "RGB", fmt: str = "PNG") -> bytes:
    color = 128 if mode in ("L", "1") else (10, 120, 200, 255)[:len(mode)]
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    return make_image_bytes


@pytest.fixture
def unused_port():
    """一个当前没有监听的端口，连接会被拒绝"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class Receiver:
    """
    本地接收端，模拟桌面端：收到一条消息后按 mode 关闭连接
    - close: 正常关闭
    - reply: 先回一条 "ok" 再关闭
    - abort: 以 1011 错误码关闭
    - hold: 保持第一个连接不关，直到 release()
    """

    def __init__(self, mode: str = "close"):
        self.mode = mode
        self.messages = []
        self.connections = 0
        self.received = asyncio.Event()
        self._release = asyncio.Event()
        self.port = None

    async def handler(self, ws):
        self.connections += 1
        number = self.connections
        try:
            message = await ws.recv()
        except websockets.exceptions.ConnectionClosed:
            return
        self.messages.append(message)
        self.received.set()

        if self.mode == "reply":
            await ws.send("ok")
        if self.mode == "abort":
            await ws.close(code=1011, reason="boom")
            return
        if self.mode == "hold" and number == 1:
            await self._release.wait()
        await ws.close()

    def release(self):
        self._release.set()


@pytest_asyncio.fixture
async def receiver_factory():
    servers = []
    receivers = []

    async def start(mode: str = "close") -> Receiver:
        receiver = Receiver(mode)
        server = await websockets.serve(receiver.handler, "127.0.0.1", 0, max_size=None)
        receiver.port = server.sockets[0].getsockname()[1]
        servers.append(server)
        receivers.append(receiver)
        return receiver

    yield start

    for receiver in receivers:
        receiver.release()
    for server in servers:
        server.close()
        await server.wait_closed()


@pytest.fixture
def granted():
    async def checker():
        return Permissions(camera=True, library=True, scanner=True)
    return checker


@pytest.fixture
def no_update():
    async def checker():
        return None
    return checker
