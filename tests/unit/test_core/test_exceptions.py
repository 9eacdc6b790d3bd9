"""Tests for core exceptions."""

from chat_service.core import exceptions as exc


def test_app_exception_defaults_title() -> None:
    error = exc.AppException(status_code=400, detail="bad")
    assert error.title == "Bad Request"
    assert error.extra == {}
    assert str(error) == "bad"


def test_not_found_exception_fields() -> None:
    error = exc.NotFoundException(detail="Chat not found", type="chat-not-found")
    assert error.status_code == 404
    assert error.type == "chat-not-found"
    assert error.title == "Not Found"


def test_authentication_failed_is_unauthorized() -> None:
    error = exc.AuthenticationFailedException("User not found", extra={"user_id": "x"})
    assert isinstance(error, exc.UnauthorizedException)
    assert error.status_code == 401
    assert error.type == "authentication-failed"
    assert error.extra == {"user_id": "x"}


def test_not_authenticated_default_message() -> None:
    error = exc.NotAuthenticatedException()
    assert error.detail == "Not authenticated"
    assert error.type == "not-authenticated"


def test_validation_and_internal_errors() -> None:
    assert exc.ValidationException(detail="text must not be blank").status_code == 422
    internal = exc.InternalServerException()
    assert internal.status_code == 500
    assert internal.detail == "Internal error"
