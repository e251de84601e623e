# qrshot/services/transfer.py 单次 websocket 发送控制器
from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from qrshot.core import config
from qrshot.models.address import Address
from qrshot.models.image import ImagePayload
from qrshot.models.transfer import TransferMessage, TransferPhase
from qrshot.utils.exception import TransferBusyError

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class TransferController:
    """
    把一张图片发给接收端：建立连接 -> 发送一条消息 -> 等待接收端关闭。

    回调与传输层事件一一对应：
    - on_open: 连接建立
    - on_sent: 消息发送完成
    - on_message: 收到接收端消息（只记录，不解析）
    - on_error: 连接或传输出错
    - on_close: 连接结束，无论是否出错，每次发送恰好触发一次

    同一时间只有一个连接。cancel() 之后旧连接的回调全部忽略，
    下一次发送开始前会关闭仍未结束的旧连接。
    """

    def __init__(
        self,
        on_open: Optional[Callback] = None,
        on_sent: Optional[Callback] = None,
        on_message: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        on_close: Optional[Callback] = None,
        open_timeout: Optional[float] = config.open_timeout,
    ):
        self.on_open = on_open
        self.on_sent = on_sent
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.open_timeout = open_timeout

        self.phase = TransferPhase.IDLE
        self.has_error = False
        self.last_error: Optional[BaseException] = None
        self._connections: Set[Any] = set()  # 所有仍打开的连接，包括已取消的
        self._task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0  # 每次发送 +1，cancel 也 +1，用于丢弃过期回调

    @property
    def busy(self) -> bool:
        return self.phase in (TransferPhase.CONNECTING, TransferPhase.SENDING)

    def start(self, address: Address, payload: ImagePayload) -> asyncio.Task:
        """在后台开始一次发送，立即返回任务"""
        if self.busy:
            raise TransferBusyError("已有图片正在发送")
        # 任务真正开始前就占住本次的编号，期间的 cancel 会让它直接放弃
        generation = self._begin()
        task = asyncio.create_task(self.send(address, payload, generation))
        self._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait(self) -> TransferPhase:
        """等待后台发送结束"""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.phase

    async def send(self, address: Address, payload: ImagePayload,
                   generation: Optional[int] = None) -> TransferPhase:
        """
        发送一次并等待连接结束。

        Args:
            generation: start() 分配的编号，直接调用时为 None

        Returns:
            TransferPhase: 本次发送的结果，DONE 或 ERROR；开始前已被取消时为 IDLE，且不触发任何回调
        """
        if generation is None:
            generation = self._begin()
        await self._close_stale()
        if generation != self._generation:
            logger.info("[传输] 发送开始前已取消")
            return TransferPhase.IDLE

        ws = None
        failed = False
        try:
            logger.info("[传输] 连接 %s", address.url)
            ws = await websockets.connect(
                address.url,
                open_timeout=self.open_timeout,
                max_size=config.max_message_size,
            )
            self._connections.add(ws)
            logger.info("[传输] Open!")
            self._fire(generation, self.on_open)

            self._set_phase(generation, TransferPhase.SENDING)
            message = TransferMessage(payload.encoded)
            logger.info("[传输] 发送 %d 字节，消息共 %d 字节", len(payload), len(message))
            await ws.send(message.encode())
            logger.info("[传输] Done")
            self._fire(generation, self.on_sent)

            # 接收端负责关闭连接，其间的消息只记录
            async for msg in ws:
                logger.info("[传输] 收到消息: %.200s", msg)
                self._fire(generation, self.on_message, msg)
        except ConnectionClosedOK:
            pass
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("[传输] 出错: %r", e)
            failed = True
            if generation == self._generation:
                self.has_error = True
                self.last_error = e
            self._fire(generation, self.on_error, e)
        finally:
            if ws is not None:
                self._connections.discard(ws)
                await ws.close()
            logger.info("[传输] closed")
            self._set_phase(generation, TransferPhase.ERROR if failed else TransferPhase.DONE)
            self._fire(generation, self.on_close)

        return TransferPhase.ERROR if failed else TransferPhase.DONE

    def _begin(self) -> int:
        """分配新的编号并进入 CONNECTING，之前的发送全部过期"""
        self._generation += 1
        self.phase = TransferPhase.CONNECTING
        self.has_error = False
        self.last_error = None
        return self._generation

    def cancel(self) -> None:
        """
        只改本地状态，不中断正在进行的发送，旧连接后续的回调不再生效。
        """
        if self.busy:
            logger.info("[传输] 取消，等待中的连接不再通知")
        self._generation += 1
        self.phase = TransferPhase.IDLE

    def reset(self) -> None:
        """回到 IDLE，用于重新扫描"""
        self.cancel()
        self.has_error = False
        self.last_error = None

    async def close(self) -> None:
        """关闭所有仍然打开的连接并等待后台任务结束"""
        self.cancel()
        await self._close_stale()
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _close_stale(self) -> None:
        stale = list(self._connections)
        if stale:
            logger.info("[传输] 关闭 %d 个未结束的连接", len(stale))
        for ws in stale:
            self._connections.discard(ws)
            await ws.close()

    def _set_phase(self, generation: int, phase: TransferPhase) -> None:
        if generation == self._generation:
            self.phase = phase

    def _fire(self, generation: int, callback: Optional[Callback], *args) -> None:
        if callback is None or generation != self._generation:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception("[传输] 回调 %s 出错: %s", getattr(callback, '__qualname__', callback), e)
