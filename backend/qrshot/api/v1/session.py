# qrshot/api/v1/session.py 会话控制 API：扫码、选图、拍照、重新扫描、取消
from typing import Optional
from dataclasses import asdict

from fastapi import APIRouter, UploadFile, File, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from qrshot.models.image import ImagePayload
from qrshot.services.session import SessionService
from qrshot.utils.exception import (
    QrshotError,
    NotReadyError,
    TransferBusyError,
)

# 创建路由器
router = APIRouter(tags=["session"])

# 全局会话服务，由 main.py 在启动时注入
_session_service: Optional[SessionService] = None


def initialize(session_service: SessionService) -> None:
    global _session_service
    _session_service = session_service


def get_session() -> SessionService:
    if _session_service is None:
        raise HTTPException(status_code=503, detail="会话服务尚未初始化")
    return _session_service


class ScanText(BaseModel):
    data: str


class PickRequest(BaseModel):
    path: Optional[str] = None  # 相对路径按相册目录解析，为空表示取消


def _error_response(e: QrshotError) -> JSONResponse:
    if isinstance(e, (NotReadyError, TransferBusyError)):
        status_code = 409
    else:
        status_code = 400
    return JSONResponse(
        content={"success": False, "message": str(e)},
        status_code=status_code,
    )


def _sent_response(payload: Optional[ImagePayload]) -> JSONResponse:
    if payload is None:
        return JSONResponse(content={"success": True, "cancelled": True, "message": "已取消"})
    return JSONResponse(content={
        "success": True,
        "cancelled": False,
        "message": "发送中...",
        "width": payload.width,
        "height": payload.height,
        "bytes": len(payload),
        "compression": round(payload.compression_ratio, 1),
    })


@router.get("/status")
async def get_status():
    """当前界面与会话状态"""
    return JSONResponse(content=get_session().status())


@router.post("/scan")
async def scan(image: UploadFile = File(...)):
    """上传一张含二维码的图片"""
    session = get_session()
    try:
        address = await session.scan_image(await image.read())
    except QrshotError as e:
        return _error_response(e)
    if address is None:
        return JSONResponse(
            content={"success": False, "message": "已经扫描过，请先重新扫描"},
            status_code=409,
        )
    return JSONResponse(content={"success": True, "ip_address": address})


@router.post("/scan-camera")
async def scan_camera():
    """用本机摄像头扫码"""
    session = get_session()
    try:
        address = await session.scan_camera()
    except QrshotError as e:
        return _error_response(e)
    if address is None:
        return JSONResponse(
            content={"success": False, "message": "已经扫描过，请先重新扫描"},
            status_code=409,
        )
    return JSONResponse(content={"success": True, "ip_address": address})


@router.post("/scan-text")
async def scan_text(body: ScanText):
    """直接提交扫码得到的文本"""
    session = get_session()
    try:
        accepted = session.handle_barcode_scanned(body.data)
    except QrshotError as e:
        return _error_response(e)
    return JSONResponse(content={
        "success": accepted,
        "ip_address": session.state.ip_address,
    })


@router.post("/image")
async def upload_image(image: UploadFile = File(...)):
    """上传图片并发送"""
    session = get_session()
    try:
        payload = await session.upload_image(await image.read(), image.filename or "")
    except QrshotError as e:
        return _error_response(e)
    return _sent_response(payload)


@router.post("/pick")
async def pick_image(body: PickRequest):
    """从相册目录选一张图片并发送"""
    try:
        payload = await get_session().pick_image(body.path)
    except QrshotError as e:
        return _error_response(e)
    return _sent_response(payload)


@router.post("/photo")
async def take_photo():
    """拍照并发送"""
    try:
        payload = await get_session().take_photo()
    except QrshotError as e:
        return _error_response(e)
    return _sent_response(payload)


@router.post("/rescan")
async def rescan():
    get_session().handle_rescan()
    return JSONResponse(content={"success": True})


@router.post("/cancel")
async def cancel():
    get_session().cancel()
    return JSONResponse(content={"success": True})


@router.post("/notification/dismiss")
async def dismiss_notification():
    get_session().dismiss_notification()
    return JSONResponse(content={"success": True})


@router.get("/update")
async def get_update():
    update = get_session().state.update
    return JSONResponse(content={
        "available": update is not None,
        "update": asdict(update) if update else None,
    })


@router.post("/update/apply")
async def install_update():
    session = get_session()
    if session.state.update is None:
        return JSONResponse(content={"success": False, "message": "没有可用更新"}, status_code=404)
    installed = await session.install_update()
    return JSONResponse(
        content={"success": installed, "message": "重启后生效" if installed else "安装失败"},
        status_code=200 if installed else 500,
    )
