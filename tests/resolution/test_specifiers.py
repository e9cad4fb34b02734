"""Tests for specifier classification."""

from pathlib import Path

import pytest
from shimrun.resolution.specifiers import ResolutionResult
from shimrun.resolution.specifiers import SpecifierKind
from shimrun.resolution.specifiers import classify
from shimrun.resolution.specifiers import is_bare
from shimrun.resolution.specifiers import split_scheme


@pytest.mark.parametrize(
    ("specifier", "kind"),
    [
        ("./util", SpecifierKind.RELATIVE),
        ("../lib/util.js", SpecifierKind.RELATIVE),
        (".", SpecifierKind.RELATIVE),
        ("/abs/path.ts", SpecifierKind.ABSOLUTE),
        ("file:///tmp/x.ts", SpecifierKind.ABSOLUTE),
        ("python:json", SpecifierKind.BUILTIN),
        ("node:fs", SpecifierKind.BUILTIN),
        ("lodash", SpecifierKind.BARE),
        ("@app/config", SpecifierKind.BARE),
        ("pkg/sub/module", SpecifierKind.BARE),
    ],
)
def test_classify(specifier, kind):
    """Test specifier classification."""
    assert classify(specifier, windows=False) is kind


def test_drive_letters_are_absolute_only_on_windows():
    """Test drive letters count as absolute only on Windows."""
    assert classify("C:\\src\\app.ts", windows=True) is SpecifierKind.ABSOLUTE
    assert classify("C:/src/app.ts", windows=True) is SpecifierKind.ABSOLUTE
    # Elsewhere "C:" reads as a scheme
    assert classify("C:/src/app.ts", windows=False) is SpecifierKind.BUILTIN


def test_is_bare():
    """Test bare specifier detection."""
    assert is_bare("lodash")
    assert not is_bare("./lodash")
    assert not is_bare("python:os")


def test_split_scheme():
    """Test scheme splitting lowercases the scheme."""
    assert split_scheme("Python:json") == ("python", "json")
    assert split_scheme("lodash") == ("", "lodash")


def test_result_url():
    """Test result URLs for resolved files."""
    path = Path("/tmp/a.ts").resolve()
    assert ResolutionResult("./a.ts", path).url == path.as_uri()
    assert ResolutionResult("python:json", None).url == "python:json"
