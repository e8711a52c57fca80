from unittest.mock import patch

from infrastructure.repositories.sqlite_session_repository import SessionRecord, SQLiteSessionStore
from infrastructure.verification.static_backend import StaticVerificationBackend
from use_cases import bootstrap
from use_cases.auth_session import AuthSession
from use_cases.reset_flow import LoginStep, ResetFlow


def _settings(values):
    return lambda key, default=None: values.get(key, default)


def test_run_startup_builds_session_objects(tmp_path, session_state):
    db_path = str(tmp_path / "panel.db")
    store = SQLiteSessionStore(db_path)
    store.init_db()
    store.write_record("browser-a", SessionRecord(identity="ops@example.com"))

    settings = {"OPSPANEL_DB": db_path, "ADMIN_LOGIN": "ops@example.com", "ADMIN_PASSWORD": "GoodPass1", "ADMIN_MOBILE": "9999999999"}
    with patch("auth.get_setting", side_effect=_settings(settings)), \
         patch("utils.session_manager.read_browser_token", return_value="browser-a"):
        result = bootstrap.run_startup()

    state = session_state
    assert result.status == "CONTINUE"
    assert result.planned_steps == (
        "init_session_state",
        "init_storage",
        "build_verification_backend",
        "initialize_auth_session",
        "create_reset_flow",
    )
    assert isinstance(state.auth_session, AuthSession)
    assert state.auth_session.current().user.identity == "ops@example.com"
    assert state.auth_session.token == "browser-a"
    assert state.browser_token_action is None
    assert isinstance(state.reset_flow, ResetFlow)
    assert isinstance(state.reset_flow.step, LoginStep)


def test_run_startup_forgets_unknown_browser_token(tmp_path, session_state):
    settings = {"OPSPANEL_DB": str(tmp_path / "panel.db"), "ADMIN_LOGIN": "ops@example.com", "ADMIN_PASSWORD": "GoodPass1"}
    with patch("auth.get_setting", side_effect=_settings(settings)), \
         patch("utils.session_manager.read_browser_token", return_value="expired-token"):
        bootstrap.run_startup()

    assert session_state.auth_session.current().is_authenticated is False
    assert session_state.auth_session.token is None
    assert session_state.browser_token_action == ("clear", None)


def test_run_startup_reuses_existing_objects(session_state):
    bootstrap.session_manager.init_session_state()
    session_state.auth_session = object()
    session_state.reset_flow = object()

    with patch("use_cases.bootstrap.auth.init_storage") as mock_init:
        result = bootstrap.run_startup()

    assert result.status == "CONTINUE"
    assert result.planned_steps == ("init_session_state",)
    mock_init.assert_not_called()


@patch("use_cases.bootstrap.auth.init_storage", side_effect=RuntimeError("Session store migration to v1 failed"))
def test_run_startup_stops_when_storage_broken(_mock_init, session_state):
    result = bootstrap.run_startup()

    assert result.status == "STOP"
    assert session_state.auth_session is None


def test_backend_selection():
    import auth
    from infrastructure.verification.http_backend import HttpVerificationBackend

    with patch("auth.get_setting", side_effect=_settings({"VERIFY_API_URL": "https://auth.example.com", "VERIFY_API_TIMEOUT": "3"})):
        backend = auth.build_verification_backend()
    assert isinstance(backend, HttpVerificationBackend)
    assert backend.timeout == 3.0

    with patch("auth.get_setting", side_effect=_settings({"ADMIN_LOGIN": "ops@example.com", "ADMIN_PASSWORD": "GoodPass1"})):
        backend = auth.build_verification_backend()
    assert isinstance(backend, StaticVerificationBackend)
