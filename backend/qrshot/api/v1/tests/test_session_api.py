import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from qrshot.api.v1 import session as session_api
from qrshot.conftest import make_image_bytes
from qrshot.models.session import UpdateInfo
from qrshot.services.session import SessionService
from qrshot.services.transfer import TransferController
from qrshot.utils.exception import ScanError


class TextScanner:
    """把上传内容当作二维码文本"""

    def decode(self, image_bytes: bytes) -> str:
        text = image_bytes.decode(errors="ignore").strip()
        if not text:
            raise ScanError("图片中没有找到二维码")
        return text

    def decode_frame(self, frame):
        return None

    def scan_camera(self, camera_index, max_frames):
        return "127.0.0.1"


@pytest_asyncio.fixture
async def api(granted, no_update, tmp_path, receiver_factory):
    receiver = await receiver_factory("close")
    service = SessionService(
        scanner=TextScanner(),
        transfer=TransferController(open_timeout=2),
        permission_checker=granted,
        update_checker=no_update,
        library_dir=tmp_path,
        port=receiver.port,
    )
    await service.initialize()
    session_api.initialize(service)

    app = FastAPI()
    app.include_router(session_api.router, prefix="/api/v1/session")
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        client.service = service
        client.receiver = receiver
        yield client

    await service.close()
    session_api._session_service = None


async def test_status_starts_on_scanner(api):
    response = await api.get("/api/v1/session/status")
    assert response.status_code == 200
    assert response.json()["screen"] == "scanner"


async def test_scan_upload_then_duplicate(api):
    response = await api.post("/api/v1/session/scan", files={"image": ("qr.png", b"127.0.0.1")})
    assert response.json() == {"success": True, "ip_address": "127.0.0.1"}

    response = await api.post("/api/v1/session/scan", files={"image": ("qr.png", b"10.0.0.9")})
    assert response.status_code == 409
    assert api.service.state.ip_address == "127.0.0.1"


async def test_scan_without_qr_code(api):
    response = await api.post("/api/v1/session/scan", files={"image": ("qr.png", b"  ")})
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_scan_camera(api):
    response = await api.post("/api/v1/session/scan-camera")
    assert response.json() == {"success": True, "ip_address": "127.0.0.1"}
    assert (await api.post("/api/v1/session/scan-camera")).status_code == 409


async def test_scan_text(api):
    response = await api.post("/api/v1/session/scan-text", json={"data": "http://127.0.0.1/"})
    assert response.json() == {"success": True, "ip_address": "127.0.0.1"}

    response = await api.post("/api/v1/session/scan-text", json={"data": "10.0.0.1"})
    assert response.json()["success"] is False


async def test_image_before_scan_is_conflict(api):
    response = await api.post("/api/v1/session/image", files={"image": ("a.png", make_image_bytes(5, 5))})
    assert response.status_code == 409


async def test_image_upload_sends(api):
    await api.post("/api/v1/session/scan-text", json={"data": "127.0.0.1"})

    response = await api.post(
        "/api/v1/session/image",
        files={"image": ("big.png", make_image_bytes(2000, 400))},
    )
    body = response.json()
    assert response.status_code == 200
    assert body["cancelled"] is False
    assert (body["width"], body["height"]) == (1000, 200)

    await api.service.transfer.wait()
    status = (await api.get("/api/v1/session/status")).json()
    assert status["screen"] == "picker"
    assert status["show_snack"] is True
    assert status["notification"]["is_error"] is False
    assert api.receiver.messages[0].startswith("screenshot,")

    response = await api.post("/api/v1/session/notification/dismiss")
    assert response.json()["success"]
    assert (await api.get("/api/v1/session/status")).json()["show_snack"] is False


async def test_pick_cancelled(api):
    await api.post("/api/v1/session/scan-text", json={"data": "127.0.0.1"})
    response = await api.post("/api/v1/session/pick", json={})
    assert response.json()["cancelled"] is True


async def test_pick_missing_file(api):
    await api.post("/api/v1/session/scan-text", json={"data": "127.0.0.1"})
    response = await api.post("/api/v1/session/pick", json={"path": "missing.png"})
    assert response.status_code == 400


async def test_rescan_and_cancel(api):
    await api.post("/api/v1/session/scan-text", json={"data": "127.0.0.1"})

    assert (await api.post("/api/v1/session/cancel")).json()["success"]
    assert (await api.post("/api/v1/session/rescan")).json()["success"]

    status = (await api.get("/api/v1/session/status")).json()
    assert status["screen"] == "scanner"
    assert status["ip_address"] is None
    assert status["scanned"] is False


async def test_update_endpoints(api):
    response = await api.get("/api/v1/session/update")
    assert response.json() == {"available": False, "update": None}
    assert (await api.post("/api/v1/session/update/apply")).status_code == 404

    api.service.state.update = UpdateInfo(current_version="1.0.0", latest_version="2.0.0")
    body = (await api.get("/api/v1/session/update")).json()
    assert body["available"] is True
    assert body["update"]["latest_version"] == "2.0.0"


async def test_uninitialized_service(api):
    session_api._session_service = None
    response = await api.get("/api/v1/session/status")
    assert response.status_code == 503


async def test_main_app_mounts_session_router():
    from qrshot.main import app

    paths = {route.path for route in app.routes}
    assert "/api/v1/session/status" in paths
    assert "/api/v1/session/photo" in paths

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/")
    assert response.json()["message"] == "qrshot is running"
