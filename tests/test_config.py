"""
Tests for configuration resolution and mutation
"""

import stat
import sys
from pathlib import Path

import pytest
import yaml

from openrouter_cli.core.config import (
    DEFAULT_BASE_URL,
    Config,
    ConfigOverrides,
    get_config_path,
    mask_api_key,
    resolve,
)
from openrouter_cli.core.errors import (
    ConfigError,
    ConfigValidationError,
    NoAPIKeyError,
    UnknownConfigKeyError,
)


def write_config(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


class TestResolve:

    def test_missing_file_gives_defaults(self, config_file):
        config = resolve(config_path=config_file, environ={})

        assert config.api_key == ""
        assert config.default_model == "openai/gpt-4"
        assert config.default_temperature == 1.0
        assert config.default_max_tokens == 4096
        assert config.output_format == "pretty"
        assert config.api_base_url == DEFAULT_BASE_URL
        assert config.timeout == 60
        assert config.unavailable_models == []
        assert config.config_path == config_file
        assert not config_file.exists()

    def test_file_values_override_defaults(self, config_file):
        write_config(config_file, {
            "default_model": "anthropic/claude-3-haiku",
            "default_temperature": 0.3,
            "timeout": 15,
            "unavailable_models": ["a/b", "c/d"],
        })

        config = resolve(config_path=config_file, environ={})

        assert config.default_model == "anthropic/claude-3-haiku"
        assert config.default_temperature == 0.3
        assert config.timeout == 15
        assert config.unavailable_models == ["a/b", "c/d"]
        # untouched fields keep their defaults
        assert config.default_max_tokens == 4096
        assert config.output_format == "pretty"

    def test_integer_temperature_in_file_is_accepted(self, config_file):
        write_config(config_file, {"default_temperature": 1})

        config = resolve(config_path=config_file, environ={})

        assert config.default_temperature == 1.0
        assert isinstance(config.default_temperature, float)

    @pytest.mark.parametrize("has_file,has_env,has_override,expected", [
        (False, False, False, ""),
        (True, False, False, "file-key"),
        (True, True, False, "env-key"),
        (False, True, False, "env-key"),
        (True, True, True, "flag-key"),
        (True, False, True, "flag-key"),
    ])
    def test_api_key_layers_last_write_wins(self, config_file, has_file, has_env, has_override, expected):
        if has_file:
            write_config(config_file, {"api_key": "file-key"})
        environ = {"OPENROUTER_API_KEY": "env-key"} if has_env else {}
        overrides = ConfigOverrides(api_key="flag-key") if has_override else None

        config = resolve(overrides=overrides, config_path=config_file, environ=environ)

        assert config.api_key == expected

    def test_empty_environment_key_does_not_override(self, config_file):
        write_config(config_file, {"api_key": "file-key"})

        config = resolve(config_path=config_file, environ={"OPENROUTER_API_KEY": ""})

        assert config.api_key == "file-key"

    def test_overrides_only_touch_supplied_fields(self, config_file):
        write_config(config_file, {"default_model": "file/model", "timeout": 30})

        config = resolve(
            overrides=ConfigOverrides(default_model="flag/model"),
            config_path=config_file,
            environ={},
        )

        assert config.default_model == "flag/model"
        assert config.timeout == 30

    def test_uses_process_environment_by_default(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "process-key")

        config = resolve(config_path=config_file)

        assert config.api_key == "process-key"

    @pytest.mark.parametrize("content", [
        b"default_model: [unclosed\n",
        b"default_model: \xff\xfe\n",
    ])
    def test_malformed_yaml_is_fatal(self, config_file, content):
        config_file.parent.mkdir(parents=True)
        config_file.write_bytes(content)

        with pytest.raises(ConfigError, match="failed to parse config file"):
            resolve(config_path=config_file, environ={})

    def test_non_mapping_document_is_fatal(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            resolve(config_path=config_file, environ={})

    @pytest.mark.parametrize("data", [
        {"default_temperature": "hot"},
        {"timeout": "soon"},
        {"default_max_tokens": 1.5},
        {"default_model": 42},
        {"unavailable_models": "a/b"},
        {"timeout": True},
        {"timeout": 0},
        {"output_format": "yaml"},
        {"api_base_url": "openrouter.ai"},
        {"api_base_url": "http://[::1"},
        {"api_base_url": "https://"},
    ])
    def test_wrongly_typed_field_is_fatal(self, config_file, data):
        write_config(config_file, data)

        with pytest.raises(ConfigError, match="invalid value"):
            resolve(config_path=config_file, environ={})

    def test_empty_file_gives_defaults(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("", encoding="utf-8")

        config = resolve(config_path=config_file, environ={})

        assert config == Config()

    def test_duplicate_unavailable_models_in_file_are_collapsed(self, config_file):
        write_config(config_file, {"unavailable_models": ["a/b", "c/d", "a/b"]})

        config = resolve(config_path=config_file, environ={})

        assert config.unavailable_models == ["a/b", "c/d"]

    def test_empty_key_is_not_an_error_until_required(self, config_file):
        config = resolve(config_path=config_file, environ={})

        with pytest.raises(NoAPIKeyError):
            config.require_api_key()

    def test_require_api_key_returns_key(self, config):
        assert config.require_api_key() == "sk-or-test-1234"


class TestConfigPath:

    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="XDG layout is Linux specific")
    def test_honours_xdg_config_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))

        assert get_config_path() == tmp_path / "cfg" / "openrouter" / "config.yaml"

    def test_falls_back_to_dotfile_without_home(self, monkeypatch):
        def no_home():
            raise RuntimeError("Could not determine home directory.")

        monkeypatch.setattr(Path, "home", staticmethod(no_home))

        assert get_config_path() == Path(".openrouter.yaml")


class TestSave:

    def test_save_writes_every_field(self, config, config_file):
        config.unavailable_models = ["x/y"]
        config.save()

        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        assert data == {
            "api_key": "sk-or-test-1234",
            "default_model": "openai/gpt-4",
            "default_temperature": 1.0,
            "default_max_tokens": 4096,
            "output_format": "pretty",
            "api_base_url": DEFAULT_BASE_URL,
            "timeout": 60,
            "unavailable_models": ["x/y"],
        }

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_save_restricts_permissions(self, config, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{}", encoding="utf-8")
        config_file.chmod(0o644)

        config.save()

        assert stat.S_IMODE(config_file.stat().st_mode) == 0o600

    def test_saved_config_resolves_back(self, config, config_file):
        config.default_model = "meta-llama/llama-3-8b-instruct"
        config.save()

        loaded = resolve(config_path=config_file, environ={})

        assert loaded == config


class TestSetValue:

    def test_set_persists_whole_config(self, config, config_file):
        config.set_value("default_model", "google/gemini-pro")

        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        assert data["default_model"] == "google/gemini-pro"
        assert data["api_key"] == "sk-or-test-1234"
        assert data["timeout"] == 60

    @pytest.mark.parametrize("key,value,attr,expected", [
        ("default_temperature", "0.7", "default_temperature", 0.7),
        ("default_temperature", "2", "default_temperature", 2.0),
        ("default_max_tokens", "512", "default_max_tokens", 512),
        ("timeout", "120", "timeout", 120),
        ("output_format", "json", "output_format", "json"),
        ("api_key", "sk-or-new", "api_key", "sk-or-new"),
        ("api_base_url", "https://example.com/api/v1/", "api_base_url", "https://example.com/api/v1"),
    ])
    def test_valid_values(self, config, key, value, attr, expected):
        config.set_value(key, value)

        assert getattr(config, attr) == expected

    @pytest.mark.parametrize("key,value,message", [
        ("default_temperature", "warm", "temperature must be a number"),
        ("default_temperature", "2.5", "between"),
        ("default_max_tokens", "many", "max_tokens must be an integer"),
        ("default_max_tokens", "-1", "must not be negative"),
        ("timeout", "1.5", "timeout must be an integer"),
        ("timeout", "0", "timeout must be positive"),
        ("output_format", "yaml", "pretty, raw, or json"),
        ("api_base_url", "openrouter.ai", "http or https"),
        ("api_base_url", "http://[::1", "http or https"),
        ("api_base_url", "https://", "http or https"),
    ])
    def test_invalid_values_are_rejected(self, config, config_file, key, value, message):
        with pytest.raises(ConfigValidationError, match=message):
            config.set_value(key, value)

        assert not config_file.exists()

    def test_validation_error_does_not_chain_parse_failure(self, config):
        with pytest.raises(ConfigValidationError) as exc_info:
            config.set_value("timeout", "soon")

        assert exc_info.value.__cause__ is None
        assert exc_info.value.__suppress_context__

    def test_unknown_key_is_rejected(self, config, config_file):
        with pytest.raises(UnknownConfigKeyError) as exc_info:
            config.set_value("colour", "blue")

        assert exc_info.value.key == "colour"
        assert not config_file.exists()

    def test_unavailable_models_is_not_settable(self, config):
        with pytest.raises(UnknownConfigKeyError):
            config.set_value("unavailable_models", "a/b")


class TestGetValue:

    def test_api_key_is_masked(self, config):
        assert config.get_value("api_key") == "sk-...1234"

    def test_unavailable_models(self, config):
        assert config.get_value("unavailable_models") == "(none)"

        config.unavailable_models = ["a/b", "c/d"]
        assert config.get_value("unavailable_models") == "a/b\nc/d"

    def test_plain_values(self, config):
        assert config.get_value("default_model") == "openai/gpt-4"
        assert config.get_value("timeout") == "60"
        assert config.get_value("default_temperature") == "1.0"

    def test_unknown_key(self, config):
        with pytest.raises(UnknownConfigKeyError):
            config.get_value("nope")

    @pytest.mark.parametrize("key,expected", [
        ("", "(not set)"),
        ("abcd", "****"),
        ("sk-or-v1-abcdef9876", "sk-...9876"),
    ])
    def test_mask_api_key(self, key, expected):
        assert mask_api_key(key) == expected


class TestUnavailableModels:

    def test_add_twice_fails_and_grows_by_one(self, config, config_file):
        config.unavailable_models = ["existing/model"]

        config.add_unavailable_model("qwen/model:free")
        with pytest.raises(ConfigValidationError, match="already marked as unavailable"):
            config.add_unavailable_model("qwen/model:free")

        assert config.unavailable_models == ["existing/model", "qwen/model:free"]
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        assert data["unavailable_models"] == ["existing/model", "qwen/model:free"]

    def test_duplicate_detection_is_exact(self, config):
        config.add_unavailable_model("qwen/model:free")
        config.add_unavailable_model("Qwen/Model:free")

        assert len(config.unavailable_models) == 2

    def test_remove_present_model(self, config, config_file):
        config.unavailable_models = ["a/b", "c/d", "e/f"]

        config.remove_unavailable_model("c/d")

        assert config.unavailable_models == ["a/b", "e/f"]
        assert not config.is_model_unavailable("c/d")
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        assert data["unavailable_models"] == ["a/b", "e/f"]

    def test_remove_absent_model_fails(self, config, config_file):
        config.unavailable_models = ["a/b"]

        with pytest.raises(ConfigValidationError, match="not found in unavailable list"):
            config.remove_unavailable_model("c/d")

        assert config.unavailable_models == ["a/b"]
        assert not config_file.exists()
