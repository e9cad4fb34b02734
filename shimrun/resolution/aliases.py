"""Path alias matcher.

Aliases come from a tsconfig-style file named by ``SHIMRUN_ALIAS_CONFIG``::

    {
      "compilerOptions": {
        "baseUrl": ".",
        "paths": {
          "@app/*": ["./src/app/*"],
          "config": ["./src/config/index"]
        }
      }
    }

JSON files may carry ``//`` and ``/* */`` comments and trailing commas, as
``tsc --init`` writes them. Files ending in ``.yaml`` or ``.yml`` are read
with PyYAML instead. The table is loaded on first use and never re-read. A missing or broken file
switches aliasing off for the rest of the process.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from ..errors import AliasConfigError
from .specifiers import is_bare

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "tsconfig.json"
YAML_SUFFIXES = frozenset({".yaml", ".yml"})

# String literals are matched first so comment markers inside them survive
_JSON_STRING = r'"(?:\\.|[^"\\])*"'
_COMMENT_RE = re.compile(rf"({_JSON_STRING})|//[^\n]*|/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(rf"({_JSON_STRING})|,(\s*[}}\]])")


def strip_jsonc(content: str) -> str:
    """Remove comments and trailing commas from JSONC text.

    Args:
        content: JSON with ``//`` / ``/* */`` comments and trailing commas

    Returns:
        Plain JSON text
    """
    content = _COMMENT_RE.sub(lambda m: m.group(1) or "", content)
    return _TRAILING_COMMA_RE.sub(lambda m: m.group(1) or m.group(2), content)


def parse_config_text(text: str, path: Path) -> object:
    """Parse config text as YAML or JSONC depending on the file suffix."""
    if path.suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_load(text) or {}
    if not text.strip():
        return {}
    return json.loads(strip_jsonc(text))


class CompilerOptions(BaseModel):
    """The subset of compiler options that drive aliasing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_url: str | None = Field(None, alias="baseUrl", description="Root for non-relative lookups")
    paths: dict[str, list[str]] = Field(default_factory=dict, description="Pattern -> substitutions")


class AliasConfig(BaseModel):
    """Alias configuration file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    compiler_options: CompilerOptions = Field(default_factory=CompilerOptions, alias="compilerOptions")


@dataclass(frozen=True)
class AliasPattern:
    """One ``paths`` entry split around its wildcard."""

    pattern: str
    prefix: str
    suffix: str
    wildcard: bool
    substitutions: tuple[str, ...]

    @classmethod
    def parse(cls, pattern: str, substitutions: list[str]) -> AliasPattern:
        if pattern.count("*") > 1:
            raise ValueError(f"Pattern '{pattern}' can have at most one '*' character")
        for substitution in substitutions:
            if substitution.count("*") > 1:
                raise ValueError(f"Substitution '{substitution}' can have at most one '*' character")
        prefix, star, suffix = pattern.partition("*")
        return cls(pattern, prefix, suffix, bool(star), tuple(substitutions))

    def capture(self, specifier: str) -> str | None:
        """Text matched by the wildcard, "" for an exact match, None on mismatch."""
        if not self.wildcard:
            return "" if specifier == self.pattern else None
        if len(specifier) < len(self.prefix) + len(self.suffix):
            return None
        if specifier.startswith(self.prefix) and specifier.endswith(self.suffix):
            return specifier[len(self.prefix) : len(specifier) - len(self.suffix)]
        return None


class AliasTable:
    """Loaded alias table.

    Args:
        patterns: Parsed ``paths`` entries in declaration order
        base_dir: Directory substitutions are resolved against
        base_url: Directory bare specifiers fall back to when no pattern matches
    """

    def __init__(self, patterns: list[AliasPattern], base_dir: Path, base_url: Path | None = None):
        self.patterns = patterns
        self.base_dir = base_dir
        self.base_url = base_url

    def __len__(self) -> int:
        return len(self.patterns)

    def best_match(self, specifier: str) -> tuple[AliasPattern, str] | None:
        """Exact patterns win, then the wildcard pattern with the longest prefix."""
        best: tuple[AliasPattern, str] | None = None
        for pattern in self.patterns:
            captured = pattern.capture(specifier)
            if captured is None:
                continue
            if not pattern.wildcard:
                return pattern, captured
            if best is None or len(pattern.prefix) > len(best[0].prefix):
                best = (pattern, captured)
        return best

    def match(self, specifier: str) -> list[str]:
        """Ordered replacement specifiers (absolute paths) for a bare specifier."""
        found = self.best_match(specifier)
        if found is None:
            if self.base_url is not None:
                return [str(self.base_url / specifier)]
            return []

        pattern, captured = found
        return [str(self.base_dir / sub.replace("*", captured)) for sub in pattern.substitutions]

    @classmethod
    def from_config(cls, config: AliasConfig, config_dir: Path) -> AliasTable:
        options = config.compiler_options
        base_url = (config_dir / options.base_url).resolve() if options.base_url is not None else None
        base_dir = base_url if base_url is not None else config_dir.resolve()
        patterns = [AliasPattern.parse(key, subs) for key, subs in options.paths.items()]
        return cls(patterns, base_dir=base_dir, base_url=base_url)


def load_alias_table(config_path: Path | str) -> AliasTable:
    """Read and parse an alias configuration file.

    Args:
        config_path: Config file, or a directory containing ``tsconfig.json``

    Returns:
        The parsed table

    Raises:
        AliasConfigError: File missing, unreadable or malformed
    """
    path = Path(config_path)
    if path.is_dir():
        path = path / DEFAULT_CONFIG_NAME

    try:
        with open(path, encoding="utf-8-sig") as f:
            data = parse_config_text(f.read(), path)
    except OSError as e:
        raise AliasConfigError(path, e.strerror or str(e)) from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise AliasConfigError(path, f"parse error: {e}") from e

    if not isinstance(data, dict):
        raise AliasConfigError(path, "expected a mapping at the top level")

    try:
        config = AliasConfig.model_validate(data)
        return AliasTable.from_config(config, path.parent)
    except (ValidationError, ValueError) as e:
        raise AliasConfigError(path, str(e)) from e


class MatcherState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DISABLED = "disabled"
    LOADED = "loaded"


class PathAliasMatcher:
    """Lazily loaded, compute-once alias matcher.

    The first ``match`` call loads the table. Any failure is cached as
    DISABLED so later calls return nothing without touching the disk again.
    """

    def __init__(self, config_path: Path | str | None):
        self.config_path = config_path
        self.state = MatcherState.UNINITIALIZED
        self._table: AliasTable | None = None

    def _initialize(self) -> None:
        if not self.config_path:
            logger.debug("No alias configuration, aliasing disabled")
            self.state = MatcherState.DISABLED
            return

        try:
            self._table = load_alias_table(self.config_path)
        except AliasConfigError as e:
            logger.warning(f"{e.message}; path aliases disabled")
            self.state = MatcherState.DISABLED
            return

        self.state = MatcherState.LOADED
        logger.debug(f"Loaded {len(self._table)} path aliases from {self.config_path}")

    def match(self, specifier: str) -> list[str]:
        """Replacement candidates for a bare specifier, [] for anything else."""
        if not is_bare(specifier):
            return []
        if self.state is MatcherState.UNINITIALIZED:
            self._initialize()
        if self.state is MatcherState.DISABLED:
            return []
        assert self._table is not None
        return self._table.match(specifier)


# Process-wide matcher
_matcher: PathAliasMatcher | None = None


def get_alias_matcher(config_path: Path | str | None = None) -> PathAliasMatcher:
    """Return the process-wide matcher, creating it on first call.

    Args:
        config_path: Only used by the call that creates the matcher. Defaults
            to ``SHIMRUN_ALIAS_CONFIG``.
    """
    global _matcher
    if _matcher is None:
        if config_path is None:
            from ..settings import LoaderSettings

            config_path = LoaderSettings.from_env().alias_config
        _matcher = PathAliasMatcher(config_path)
    return _matcher


def reset_alias_matcher() -> None:
    """Forget the process-wide matcher (tests only)."""
    global _matcher
    _matcher = None
