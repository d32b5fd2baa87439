"""Tests for error handling system."""

from autolabel.core.errors import (
    AutolabelError,
    ConfigurationError,
    ErrorCode,
    MessagingError,
    ModerationApiError,
    StoreError,
    UnresolvableTargetError,
    XrpcError,
    is_auth_expired,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_code_values_match_names(self) -> None:
        """Test that code values match their names."""
        for code in ErrorCode:
            assert code.value == code.name


class TestAutolabelError:
    """Tests for AutolabelError base class."""

    def test_creation_with_message(self) -> None:
        """Test creating error with just a message."""
        error = AutolabelError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"
        assert error.details == {}
        assert error.code == ErrorCode.INTERNAL_ERROR

    def test_to_dict(self) -> None:
        """Test structured conversion for logging."""
        error = StoreError("disk full", details={"path": "/data/x.json"})

        assert error.to_dict() == {
            "code": "STORE_ERROR",
            "message": "disk full",
            "details": {"path": "/data/x.json"},
        }

    def test_subclass_codes(self) -> None:
        """Test each subclass carries its own code."""
        assert ConfigurationError("x").code == ErrorCode.CONFIGURATION_ERROR
        assert UnresolvableTargetError("x").code == ErrorCode.UNRESOLVABLE_TARGET
        assert ModerationApiError("x").code == ErrorCode.MODERATION_API_ERROR
        assert MessagingError("x").code == ErrorCode.MESSAGING_ERROR
        assert isinstance(StoreError("x"), AutolabelError)

    def test_xrpc_errors_share_a_base(self) -> None:
        """Test that moderation and messaging failures carry the XRPC fields."""
        error = MessagingError("Token has expired", status=400, error="ExpiredToken")

        assert isinstance(error, XrpcError)
        assert isinstance(ModerationApiError("x"), XrpcError)
        assert not isinstance(error, ModerationApiError)
        assert str(error) == "HTTP 400 ExpiredToken: Token has expired"
        assert error.is_auth_expired


class TestModerationApiError:
    """Tests for ModerationApiError."""

    def test_text_includes_status_and_error(self) -> None:
        """Test the HTTP <status> <error>: <message> form."""
        error = ModerationApiError("Label not allowed", status=400, error="InvalidRequest")

        assert str(error) == "HTTP 400 InvalidRequest: Label not allowed"
        assert error.status == 400
        assert error.error == "InvalidRequest"

    def test_transport_error_has_no_status(self) -> None:
        """Test the form for errors without a response."""
        error = ModerationApiError("ConnectTimeout: timed out")

        assert str(error) == "ConnectTimeout: timed out"
        assert error.status is None

    def test_auth_expiry_detection(self) -> None:
        """Test expired-session classification."""
        assert ModerationApiError("Token has expired", status=400, error="ExpiredToken").is_auth_expired
        assert ModerationApiError("no auth", status=401).is_auth_expired
        assert not ModerationApiError("bad", status=400, error="InvalidRequest").is_auth_expired

    def test_module_level_detection(self) -> None:
        """Test classification of arbitrary errors by their text."""
        assert is_auth_expired(RuntimeError("Unauthorized"))
        assert not is_auth_expired(RuntimeError("timeout"))
