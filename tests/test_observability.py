from infrastructure.observability import _scrub_sensitive_data


def test_scrubber_masks_secrets_in_frame_vars():
    event = {
        "exception": {"values": [{"stacktrace": {"frames": [{"vars": {
            "password": "GoodPass1",
            "code": "123456",
            "identity": "ops@example.com",
            "message": "code 654321 rejected",
            "nested": {"api_token": "abc"},
        }}]}}]}
    }

    scrubbed = _scrub_sensitive_data(event, {})
    frame_vars = scrubbed["exception"]["values"][0]["stacktrace"]["frames"][0]["vars"]

    assert frame_vars["password"] == "[REDACTED]"
    assert frame_vars["code"] == "[REDACTED]"
    assert frame_vars["identity"] == "ops@example.com"
    assert "654321" not in frame_vars["message"]
    assert frame_vars["nested"]["api_token"] == "[REDACTED]"


def test_scrubber_leaves_plain_events_alone():
    event = {"message": "hello"}
    assert _scrub_sensitive_data(event, {}) == {"message": "hello"}


def test_scrubber_keeps_timestamps_and_ids_outside_frames():
    event = {
        "exception": {"values": [{"stacktrace": {"frames": [{"vars": {
            "ts": "2024-05-01 10:15:30.123456",
            "rows": "1234567",
        }}]}}]},
        "extra": {"order_id": "123456", "session": "x" * 40},
    }

    scrubbed = _scrub_sensitive_data(event, {})
    frame_vars = scrubbed["exception"]["values"][0]["stacktrace"]["frames"][0]["vars"]

    assert frame_vars["ts"] == "2024-05-01 10:15:30.123456"
    assert frame_vars["rows"] == "1234567"
    assert scrubbed["extra"]["order_id"] == "123456"
    assert scrubbed["extra"]["session"] == "[REDACTED]"
