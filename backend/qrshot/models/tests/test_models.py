import pytest

from qrshot.core import config
from qrshot.models.address import Address
from qrshot.models.image import ImageAsset, ImagePayload
from qrshot.models.session import Notification, Permissions, SessionState
from qrshot.models.transfer import TransferMessage


@pytest.mark.parametrize("text, host", [
    ("192.168.0.10", "192.168.0.10"),
    ("  192.168.0.10\n", "192.168.0.10"),
    ("ws://192.168.0.10:3000/", "192.168.0.10"),
    ("http://desktop.local/", "desktop.local"),
    ("HTTPS://desktop.local:8080/path", "desktop.local"),
    ("[fe80::1]:3000", "fe80::1"),
    ("fe80::1", "fe80::1"),
])
def test_address_from_scanned_strips_display_artifacts(text, host):
    assert Address.from_scanned(text).host == host


@pytest.mark.parametrize("text", ["", "   ", "ws://", "http:///"])
def test_address_requires_a_host(text):
    with pytest.raises(ValueError):
        Address.from_scanned(text)


def test_address_url_uses_fixed_port():
    assert Address("10.0.0.5").url == f"ws://10.0.0.5:{config.PORT}/"
    assert Address("10.0.0.5").port == 3000
    assert Address("fe80::1", 3001).url == "ws://[fe80::1]:3001/"


def test_message_begins_with_screenshot_tag():
    message = TransferMessage("aGVsbG8=")
    assert message.encode() == "screenshot,aGVsbG8="
    assert message.encode().startswith("screenshot,")
    assert len(message) == len(message.encode())


def test_message_keeps_delimiters_in_payload():
    # 接收端按第一个逗号切分，负载本身不转义
    assert TransferMessage("a,b").encode() == "screenshot,a,b"


def test_image_asset_base64():
    asset = ImageAsset(width=1, height=1, data=b"hello", format="png")
    assert asset.base64 == "aGVsbG8="


def test_payload_compression_ratio():
    payload = ImagePayload(width=10, height=10, encoded="x" * 50, original_length=200)
    assert payload.compression_ratio == 400
    assert len(payload) == 50
    assert ImagePayload(width=1, height=1, encoded="").compression_ratio == 0


def test_notification_for_result():
    ok = Notification.for_result(False)
    failed = Notification.for_result(True)
    assert ok.message == config.SUCCESS_MESSAGE and not ok.is_error
    assert failed.message == config.ERROR_MESSAGE and failed.is_error
    assert ok.auto_hide_ms == 5000


def test_notification_expires():
    notification = Notification(message="x", auto_hide_ms=0)
    assert notification.expired


def test_permissions_resolved_and_granted():
    assert not Permissions().resolved
    assert not Permissions(camera=True, library=True).resolved
    assert Permissions(True, True, False).resolved
    assert not Permissions(True, True, False).granted
    assert Permissions(True, True, True).granted


def test_session_state_to_dict_hides_image_data():
    state = SessionState(ip_address="10.0.0.1", base64="abcd")
    data = state.to_dict()
    assert data["base64"] == 4
    assert data["ip_address"] == "10.0.0.1"
    assert data["permissions"] == {"camera": None, "library": None, "scanner": None}
