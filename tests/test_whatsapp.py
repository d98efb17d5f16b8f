from urllib.parse import parse_qs

import httpx
import pytest

from core.errors import TransportError
from core.settings import TwilioSettings
from services.whatsapp import RecordingTransport, WhatsAppTransport, strip_whatsapp_prefix, to_whatsapp_address


SETTINGS = TwilioSettings(account_sid="AC123", auth_token="token", whatsapp_number="+15550001111")


def _transport(handler):
    return WhatsAppTransport(SETTINGS, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_address_helpers():
    assert to_whatsapp_address("+972500000001") == "whatsapp:+972500000001"
    assert to_whatsapp_address("whatsapp:+1") == "whatsapp:+1"
    assert strip_whatsapp_prefix("whatsapp:+972500000001") == "+972500000001"


def test_send_posts_form_and_returns_sid():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(201, json={"sid": "SM42", "status": "queued"})

    assert _transport(handler).send("+972500000001", "hello") == "SM42"
    assert captured["url"] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert captured["auth"].startswith("Basic ")
    assert captured["form"] == {
        "From": ["whatsapp:+15550001111"],
        "To": ["whatsapp:+972500000001"],
        "Body": ["hello"],
    }


def test_send_raises_on_api_error():
    def handler(request):
        return httpx.Response(400, json={"message": "bad number"})

    with pytest.raises(TransportError, match="400"):
        _transport(handler).send("+1", "hi")


def test_send_raises_on_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        _transport(handler).send("+1", "hi")


def test_send_requires_credentials():
    with pytest.raises(TransportError):
        WhatsAppTransport(TwilioSettings()).send("+1", "hi")


def test_recording_transport():
    transport = RecordingTransport(fail_for=("+2",))
    assert transport.send("+1", "a") == "SM" + "1".zfill(32)
    with pytest.raises(TransportError):
        transport.send("+2", "b")
    assert transport.sent == [("+1", "a")]
