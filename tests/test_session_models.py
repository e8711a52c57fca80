from use_cases.session_models import AuthState, AuthUser, is_super_operator


def test_default_role_is_operator() -> None:
    assert AuthUser(identity="ops@example.com").role == "operator"


def test_is_super_operator() -> None:
    assert is_super_operator(AuthUser(identity="root@example.com", role="super_operator")) is True
    assert is_super_operator(AuthUser(identity="ops@example.com")) is False


def test_is_authenticated_is_derived_from_user() -> None:
    assert AuthState().is_authenticated is False
    assert AuthState(user=AuthUser(identity="ops@example.com")).is_authenticated is True
    assert AuthState(is_loading=True).is_authenticated is False
