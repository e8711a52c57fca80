import pytest
import requests
from unittest.mock import patch, MagicMock

from infrastructure.verification.backend import VerificationError
from infrastructure.verification.http_backend import HttpVerificationBackend


@pytest.fixture
def backend():
    return HttpVerificationBackend("https://auth.example.com/api/", api_token="secret-token", timeout=5)


def _response(status_code):
    resp = MagicMock()
    resp.status_code = status_code
    return resp


@pytest.mark.asyncio
@patch("requests.post")
async def test_authenticate_success(mock_post, backend):
    mock_post.return_value = _response(200)

    assert await backend.authenticate("ops@example.com", "GoodPass1") is True

    args, kwargs = mock_post.call_args
    assert args[0] == "https://auth.example.com/api/auth/login"
    assert kwargs["json"] == {"email": "ops@example.com", "password": "GoodPass1"}
    assert kwargs["headers"]["Authorization"] == "Bearer secret-token"
    assert kwargs["timeout"] == 5


@pytest.mark.asyncio
@patch("requests.post")
async def test_client_error_is_rejection(mock_post, backend):
    mock_post.return_value = _response(401)
    assert await backend.authenticate("ops@example.com", "wrong") is False


@pytest.mark.asyncio
@patch("requests.post")
async def test_server_error_raises(mock_post, backend):
    mock_post.return_value = _response(503)
    with pytest.raises(VerificationError):
        await backend.send_recovery_code("9999999999")


@pytest.mark.asyncio
@patch("requests.post")
async def test_network_error_raises(mock_post, backend):
    mock_post.side_effect = requests.ConnectionError("Connection Refused")
    with pytest.raises(VerificationError):
        await backend.verify_code("9999999999", "123456")


@pytest.mark.asyncio
@patch("requests.post")
async def test_recovery_endpoints(mock_post, backend):
    mock_post.return_value = _response(204)

    assert await backend.send_recovery_code("9999999999") is True
    assert await backend.verify_code("9999999999", "123456") is True
    assert await backend.set_new_password("9999999999", "BrandNew99") is True

    urls = [c.args[0] for c in mock_post.call_args_list]
    assert urls == [
        "https://auth.example.com/api/auth/recovery/send-code",
        "https://auth.example.com/api/auth/recovery/verify-code",
        "https://auth.example.com/api/auth/recovery/reset-password",
    ]
    assert mock_post.call_args_list[2].kwargs["json"] == {"mobile": "9999999999", "password": "BrandNew99"}


@pytest.mark.asyncio
@patch("requests.post")
async def test_no_token_no_auth_header(mock_post):
    mock_post.return_value = _response(200)
    await HttpVerificationBackend("https://auth.example.com").send_recovery_code("9999999999")
    assert "Authorization" not in mock_post.call_args.kwargs["headers"]
