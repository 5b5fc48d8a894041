"""
Tests for the error model.
"""

import pytest

from utilkit.errors import (
    ErrorKind, FileOperationError, HttpError, NetworkError, ParseError,
    TokenExpiredError, TokenMalformedError, UtilError, ValidationError,
    wrap_errors, wrap_exception,
)


class TestErrorKinds:
    """Test that each error carries its kind"""

    @pytest.mark.parametrize("error,kind", [
        (FileOperationError("x"), ErrorKind.IO_FAILURE),
        (ParseError("x"), ErrorKind.PARSE_FAILURE),
        (ValidationError("x"), ErrorKind.VALIDATION_FAILURE),
        (NetworkError("x"), ErrorKind.NETWORK_FAILURE),
        (HttpError(500), ErrorKind.NETWORK_FAILURE),
        (TokenExpiredError(), ErrorKind.TOKEN_EXPIRED),
        (TokenMalformedError(), ErrorKind.TOKEN_MALFORMED),
    ])
    def test_kind(self, error, kind):
        assert isinstance(error, UtilError)
        assert error.kind == kind

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            raise ValidationError("bad")

    def test_http_error(self):
        error = HttpError(404, "not here", url="http://example.com")
        assert error.status_code == 404
        assert error.body == "not here"
        assert str(error) == "HTTP Error: 404 - not here"
        assert not error.is_retryable()
        assert HttpError(503).is_retryable()
        assert HttpError(429).is_retryable()

    def test_to_dict(self):
        cause = OSError("disk full")
        error = FileOperationError("write failed", path="/tmp/x", cause=cause)
        data = error.to_dict()
        assert data["kind"] == "io_failure"
        assert data["message"] == "write failed"
        assert data["target"] == "/tmp/x"
        assert data["caused_by"] == "OSError: disk full"
        assert error.__cause__ is cause


class TestWrapping:
    """Test conversion of library exceptions"""

    def test_wrap_exception(self):
        error = wrap_exception(KeyError("k"), ErrorKind.PARSE_FAILURE, "missing key")
        assert isinstance(error, ParseError)
        assert isinstance(error.cause, KeyError)

    def test_wrap_errors_decorator(self):
        @wrap_errors(ErrorKind.NETWORK_FAILURE, "fetch failed", catch=(ConnectionError,))
        def fetch():
            raise ConnectionError("reset")

        with pytest.raises(NetworkError) as exc_info:
            fetch()
        assert "fetch failed: reset" in str(exc_info.value)

    def test_wrap_errors_passes_util_errors_through(self):
        @wrap_errors(ErrorKind.NETWORK_FAILURE, "fetch failed")
        def fetch():
            raise ValidationError("bad url")

        with pytest.raises(ValidationError):
            fetch()

    def test_wrap_errors_ignores_uncaught_types(self):
        @wrap_errors(ErrorKind.NETWORK_FAILURE, "fetch failed", catch=(ConnectionError,))
        def fetch():
            raise KeyError("other")

        with pytest.raises(KeyError):
            fetch()
