"""Tests for settings scopes and loader settings."""

import pytest
from pydantic import ValidationError
from shimrun.settings import ENV_ALIAS_CONFIG
from shimrun.settings import ENV_DISABLE_CACHE
from shimrun.settings import ENV_TRANSFORM_COMMAND
from shimrun.settings import ENV_TRANSFORMER
from shimrun.settings import LoaderSettings
from shimrun.settings import SettingsManager
from shimrun.settings import ShimrunSettings
from shimrun.settings import deep_merge


@pytest.fixture
def manager(tmp_path):
    project = tmp_path / "project" / ".shimrun"
    home = tmp_path / "home"
    project.mkdir(parents=True)
    (home / ".shimrun").mkdir(parents=True)
    return SettingsManager(shimrun_dir=project, home=home)


class TestSettingsManager:
    """Tests for SettingsManager."""

    def test_empty(self, manager):
        """Test no settings files."""
        assert manager.get_merged_settings() == {}
        assert manager.load() == ShimrunSettings()

    def test_scopes_merge_in_order(self, manager):
        """Test user, project and local scopes merge in that order."""
        manager.user_settings_file.write_text("aliases: user.json\nwatch:\n  clear_screen: false\n")
        manager.project_settings_file.write_text("aliases: project.json\nwatch:\n  exclude: [build]\n")
        manager.local_settings_file.write_text("transform:\n  transformer: mypkg.ts:transform\n")

        settings = manager.load()
        assert settings.aliases == "project.json"
        assert settings.watch.clear_screen is False
        assert settings.watch.exclude == ["build"]
        assert settings.transform.transformer == "mypkg.ts:transform"

    def test_unreadable_yaml_is_skipped(self, manager):
        """Test a scope with broken YAML is skipped."""
        manager.user_settings_file.write_text("aliases: [unclosed\n")
        manager.project_settings_file.write_text("aliases: project.json\n")
        assert manager.load().aliases == "project.json"

    def test_non_mapping_is_skipped(self, manager):
        """Test a scope that is not a mapping is skipped."""
        manager.project_settings_file.write_text("- just\n- a list\n")
        assert manager.get_merged_settings() == {}

    def test_invalid_values_raise(self, manager):
        """Test invalid values raise ValidationError."""
        manager.project_settings_file.write_text("transform:\n  cache: [1, 2]\n")
        with pytest.raises(ValidationError):
            manager.load()


class TestLoaderSettings:
    """Tests for LoaderSettings."""

    def test_from_env(self):
        """Test reading loader settings from the environment."""
        settings = LoaderSettings.from_env(
            {
                ENV_ALIAS_CONFIG: "/p/tsconfig.json",
                ENV_DISABLE_CACHE: "true",
                ENV_TRANSFORMER: "pkg:fn",
                ENV_TRANSFORM_COMMAND: "esbuild-json",
            }
        )
        assert settings == LoaderSettings(
            alias_config="/p/tsconfig.json",
            disable_cache=True,
            transformer="pkg:fn",
            transform_command="esbuild-json",
        )

    def test_empty_env(self):
        """Test an empty environment gives defaults."""
        assert LoaderSettings.from_env({}) == LoaderSettings()

    def test_env_round_trip(self, tmp_path):
        """Test settings survive a trip through the environment."""
        settings = LoaderSettings(alias_config=str(tmp_path / "a.json"), disable_cache=True, transformer="x:y")
        assert LoaderSettings.from_env(settings.to_env()) == settings.model_copy(
            update={"alias_config": str((tmp_path / "a.json").resolve())}
        )

    def test_from_settings(self):
        """Test building loader settings from file settings."""
        settings = ShimrunSettings.model_validate({"aliases": "a.json", "transform": {"cache": False, "command": "c"}})
        loader = LoaderSettings.from_settings(settings)
        assert loader.alias_config == "a.json"
        assert loader.disable_cache is True
        assert loader.transform_command == "c"


def test_deep_merge_recurses_into_mappings():
    """Test deep_merge merges mappings and replaces lists."""
    assert deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}}) == {"a": {"b": 1, "c": 3}}
    assert deep_merge({"a": [1]}, {"a": [2]}) == {"a": [2]}
