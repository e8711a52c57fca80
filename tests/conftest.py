from unittest.mock import patch

import pytest
import streamlit as st


class FakeSessionState(dict):
    """Attribute-style dict standing in for st.session_state outside `streamlit run`."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __setattr__(self, key, value):
        self[key] = value


@pytest.fixture
def session_state():
    state = FakeSessionState()
    with patch.object(st, "session_state", state), patch.object(st, "query_params", {}):
        yield state
