"""Tests for transform service backends."""

import json
import shlex
import sys
from types import SimpleNamespace

import pytest
from shimrun.errors import TransformError
from shimrun.loading.transform import CallableTransform
from shimrun.loading.transform import CommandTransform
from shimrun.loading.transform import PassthroughTransform
from shimrun.loading.transform import TransformOptions
from shimrun.loading.transform import TransformOutput
from shimrun.loading.transform import create_transform_service
from shimrun.loading.transform import transform_code
from shimrun.settings import LoaderSettings


def upper_transform(file_path, source, options):
    """Module-level transformer used through 'module:function' names."""
    return {"code": source.upper(), "map": {"version": 3, "sources": [file_path]}}


def failing_transform(file_path, source, options):
    return {"code": "", "errors": [{"message": "Unexpected token"}, {"message": "second"}]}


class TestTransformCode:
    """Tests for transform_code."""

    def test_passthrough(self):
        """Test the passthrough service returns the source unchanged."""
        result = transform_code(PassthroughTransform(), "/src/a.ts", "x = 1")
        assert result.code == "x = 1"
        assert result.source_map is None

    def test_errors_fail_with_file_path_and_first_message(self):
        """Test reported errors fail with the file path and first message."""
        with pytest.raises(TransformError) as exc_info:
            transform_code(failing_transform, "/src/broken.ts", "x =")
        message = str(exc_info.value)
        assert "/src/broken.ts" in message
        assert "Unexpected token" in message
        assert "second" not in message

    def test_service_exception_becomes_transform_error(self):
        """Test a raising service becomes a TransformError."""
        def boom(file_path, source, options):
            raise RuntimeError("compiler crashed")

        with pytest.raises(TransformError, match="compiler crashed"):
            transform_code(boom, "/src/a.ts", "")

    def test_jsx_mode_for_tsx(self):
        """Test .tsx files are transformed in JSX mode."""
        seen = []

        def capture(file_path, source, options):
            seen.append(options)
            return TransformOutput(code=source)

        transform_code(capture, "/src/App.tsx", "")
        transform_code(capture, "/src/util.ts", "")
        assert seen[0].jsx == "automatic"
        assert seen[1].jsx is None

    def test_cache_flag_forwarded(self):
        """Test the cache flag is forwarded to the service."""
        seen = []

        def capture(file_path, source, options):
            seen.append(options.cache)
            return TransformOutput(code=source)

        transform_code(capture, "/src/a.ts", "", cache=False)
        assert seen == [False]

    def test_map_dropped_without_sourcemap(self):
        """Test the map is dropped when source maps are off."""
        result = transform_code(CallableTransform(upper_transform), "/a.ts", "x", sourcemap=False)
        assert result.source_map is None


class TestTransformOutput:
    """Tests for normalizing service output."""

    def test_coerce_mapping(self):
        """Test coercing a mapping."""
        output = TransformOutput.coerce({"code": "c", "map": {"version": 3}})
        assert output == TransformOutput(code="c", map={"version": 3})

    def test_coerce_object(self):
        """Test coercing an object with attributes."""
        output = TransformOutput.coerce(SimpleNamespace(code="c", map=None, errors=None))
        assert output.code == "c"
        assert output.errors == []

    def test_missing_code_is_an_error(self):
        """Test output without code counts as an error."""
        assert TransformOutput.coerce({}).errors


class TestCallableTransform:
    """Tests for module:function transformers."""

    def test_import_by_name(self):
        """Test loading a transformer by module:function name."""
        transform = CallableTransform(f"{__name__}:upper_transform")
        output = transform("/a.ts", "abc", TransformOptions())
        assert output.code == "ABC"

    def test_bad_name(self):
        """Test a name without a function part is rejected."""
        with pytest.raises(ValueError):
            CallableTransform("no_colon_here")


class TestCommandTransform:
    """Tests for external command transformers."""

    def _command(self, tmp_path, body: str) -> str:
        script = tmp_path / "transformer.py"
        script.write_text(body)
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"

    def test_json_round_trip(self, tmp_path):
        """Test a command replying with JSON."""
        command = self._command(
            tmp_path,
            "import json, sys\n"
            "request = json.load(sys.stdin)\n"
            "json.dump({'code': request['source'] + '# ' + request['file_path'], 'map': None}, sys.stdout)\n",
        )
        output = CommandTransform(command, working_dir=tmp_path)("/src/a.ts", "x = 1\n", TransformOptions())
        assert output.code == "x = 1\n# /src/a.ts"
        assert output.errors == []

    def test_options_are_sent(self, tmp_path):
        """Test the request carries the transform options."""
        command = self._command(
            tmp_path,
            "import json, sys\n"
            "request = json.load(sys.stdin)\n"
            "json.dump({'code': json.dumps(request['options'])}, sys.stdout)\n",
        )
        output = CommandTransform(command)("/a.tsx", "", TransformOptions(jsx="automatic", cache=False))
        assert json.loads(output.code) == {"sourcemap": True, "jsx": "automatic", "cache": False}

    def test_nonzero_exit(self, tmp_path):
        """Test a non-zero exit becomes an error with stderr."""
        command = self._command(tmp_path, "import sys\nsys.stderr.write('syntax error at 1:3')\nsys.exit(2)\n")
        output = CommandTransform(command)("/a.ts", "", TransformOptions())
        assert output.errors == ["syntax error at 1:3"]

    def test_invalid_json(self, tmp_path):
        """Test a non-JSON reply becomes an error."""
        command = self._command(tmp_path, "print('not json')\n")
        output = CommandTransform(command)("/a.ts", "", TransformOptions())
        assert "Invalid JSON" in output.errors[0]

    def test_missing_command(self):
        """Test a missing executable becomes an error."""
        output = CommandTransform("definitely-not-a-real-transformer-binary")("/a.ts", "", TransformOptions())
        assert "Command not found" in output.errors[0]


class TestCreateTransformService:
    """Tests for choosing a transform service from settings."""

    def test_default_is_passthrough(self):
        """Test passthrough is the default."""
        assert isinstance(create_transform_service(LoaderSettings()), PassthroughTransform)

    def test_explicit_passthrough(self):
        """Test naming passthrough explicitly."""
        assert isinstance(create_transform_service(LoaderSettings(transformer="passthrough")), PassthroughTransform)

    def test_command_wins(self):
        """Test a command wins over a transformer."""
        settings = LoaderSettings(transformer=f"{__name__}:upper_transform", transform_command="tsc-json")
        assert isinstance(create_transform_service(settings), CommandTransform)

    def test_transformer(self):
        """Test a module:function transformer."""
        settings = LoaderSettings(transformer=f"{__name__}:upper_transform")
        assert isinstance(create_transform_service(settings), CallableTransform)
