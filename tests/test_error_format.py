"""Tests for error types and display formatting."""

from shimrun.errors import ResolutionError
from shimrun.errors import ShimrunError
from shimrun.errors import SpecifierNotFoundError
from shimrun.errors import TransformError
from shimrun.errors import UnsupportedSpecifierError
from shimrun.utils.error_format import format_error_message


class TestErrorTypes:
    """Tests for the loader error types."""

    def test_not_found_is_module_not_found(self):
        """Test not-found errors are ModuleNotFoundError."""
        error = SpecifierNotFoundError("./x", "/src/main.ts")
        assert isinstance(error, ModuleNotFoundError)
        assert error.code == "ERR_MODULE_NOT_FOUND"
        assert error.details == {"specifier": "./x", "requesting_file": "/src/main.ts"}

    def test_resolution_error_is_import_error_but_not_a_miss(self):
        """Test exhausted resolution is an ImportError but not a miss."""
        error = ResolutionError("@app/x", "/src/main.ts")
        assert isinstance(error, ImportError)
        assert not isinstance(error, ModuleNotFoundError)
        assert str(error) == "[shimrun] Cannot resolve '@app/x' from '/src/main.ts'"

    def test_transform_error_message(self):
        """Test the transform error message names the file."""
        error = TransformError("/src/a.ts", "Unexpected token")
        assert str(error) == "[shimrun] Transform error in /src/a.ts: Unexpected token"
        assert error.details["file"] == "/src/a.ts"

    def test_unsupported_specifier_is_value_error(self):
        """Test unsupported specifiers are ValueError."""
        assert isinstance(UnsupportedSpecifierError("ftp:x", "ftp"), ValueError)


class TestFormatErrorMessage:
    """Tests for format_error_message."""

    def test_loader_errors_shown_as_is(self):
        """Test loader errors are shown without a type prefix."""
        assert format_error_message(ShimrunError("[shimrun] boom")) == "[shimrun] boom"

    def test_type_prefix(self):
        """Test other errors get their type as a prefix."""
        assert format_error_message(ValueError("invalid input")) == "ValueError: invalid input"
        assert format_error_message(ValueError("invalid input"), include_type=False) == "invalid input"

    def test_empty_message_gets_friendly_text(self):
        """Test errors without a message get a friendly one."""
        assert format_error_message(TimeoutError()) == "TimeoutError: Operation timed out."
        assert format_error_message(RuntimeError()) == "RuntimeError: (no additional details)"
