"""Tests for configuration defaults, merging and JSON persistence."""

import json

from nanopanel.config import load_config
from nanopanel.config.loader import camel_to_snake, convert_keys, save_config, snake_to_camel
from nanopanel.config.schema import Config


class TestSchema:

    def test_defaults(self, config):
        assert config.collector.warning_cooldown == 5.0
        assert config.paginator.jumpable_threshold == 5
        assert config.paginator.long_threshold == 4
        assert config.timeouts.pagination == 60.0
        assert config.timeouts.prompt == 30.0
        assert set(config.paginator.buttons) == {"first", "back", "jump", "next", "last"}

    def test_merged_is_deep_and_non_destructive(self, config):
        merged = config.merged({"collector": {"warning_cooldown": 1}, "paginator": {"long_threshold": 3}})

        assert merged.collector.warning_cooldown == 1
        assert merged.collector.user_lock_message == config.collector.user_lock_message
        assert merged.paginator.long_threshold == 3
        assert merged.paginator.jumpable_threshold == 5
        assert config.collector.warning_cooldown == 5.0

    def test_merged_without_overrides_returns_self(self, config):
        assert config.merged(None) is config

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("NANOPANEL_TIMEOUTS__PAGINATION", "120")
        assert Config().timeouts.pagination == 120.0


class TestLoader:

    def test_key_conversion(self):
        assert camel_to_snake("warningCooldown") == "warning_cooldown"
        assert snake_to_camel("jumpable_threshold") == "jumpableThreshold"
        assert convert_keys({"paginator": {"longThreshold": 2}}) == {"paginator": {"long_threshold": 2}}

    def test_save_uses_camel_case(self, tmp_path, config):
        path = tmp_path / "config.json"
        save_config(config, path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["collector"]["warningCooldown"] == 5.0
        assert data["paginator"]["buttons"]["next"]["emoji"]["name"] == "▶️"

    def test_load_camel_case_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"timeouts": {"collectorIdle": 12}, "paginator": {"jumpMessage": "soon"}}))

        config = load_config(path)
        assert config.timeouts.collector_idle == 12
        assert config.paginator.jump_message == "soon"

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_config(path).paginator.long_threshold == 4

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "missing.json").timeouts.prompt == 30.0
