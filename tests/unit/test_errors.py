"""Unit tests for API error classification."""

from sympozium.utils.errors import (
    ChannelConvergenceError,
    not_found_error,
    already_exists_error,
    conflict_error,
    transient_error,
    error_type,
)
from conftest import api_error


class TestClassification:
    def test_not_found(self):
        assert not_found_error(api_error(404, "NotFound"))
        assert not not_found_error(api_error(500, "InternalError"))
        assert not not_found_error(ValueError("404"))

    def test_already_exists_is_not_a_conflict(self):
        ex = api_error(409, "AlreadyExists")
        assert already_exists_error(ex)
        assert not conflict_error(ex)

    def test_conflict(self):
        ex = api_error(409, "Conflict")
        assert conflict_error(ex)
        assert not already_exists_error(ex)

    def test_transient(self):
        assert transient_error(api_error(503, "ServiceUnavailable"))
        assert transient_error(api_error(429, "TooManyRequests"))
        assert not transient_error(api_error(403, "Forbidden"))

    def test_unparseable_body(self):
        ex = api_error(409)
        ex.body = "not json"
        assert conflict_error(ex)
        assert not already_exists_error(ex)


class TestErrorType:
    def test_categories(self):
        assert error_type(ChannelConvergenceError("slack", ValueError("x"))) == "convergence"
        assert error_type(api_error(409, "Conflict")) == "conflict"
        assert error_type(api_error(500, "InternalError")) == "transient"
        assert error_type(api_error(403, "Forbidden")) == "api_403"
        assert error_type(KeyError("x")) == "KeyError"

    def test_convergence_error_names_channel(self):
        ex = ChannelConvergenceError("whatsapp", ValueError("boom"))
        assert ex.channel_type == "whatsapp"
        assert "whatsapp" in str(ex)
        assert "boom" in str(ex)
