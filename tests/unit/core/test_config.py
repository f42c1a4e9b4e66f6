"""Unit tests for configuration loading."""

import json

import pytest

from taskdeps.core import CacheConfig, ConfigurationError, LoggingConfig, TaskDepsConfig
from taskdeps.core.constants import get_config_path, get_tasks_db_path


class TestTaskDepsConfig:
    """Tests for TaskDepsConfig."""

    def test_defaults(self):
        config = TaskDepsConfig()
        assert config.store.db_name == "tasks.db"
        assert config.store.use_file_storage is False
        assert config.cache.enabled is True
        assert config.cache.ttl_seconds == 600.0
        assert config.cache.check_period_seconds == 20.0
        assert config.logging.level == "warning"

    def test_load_missing_file_uses_defaults(self, temp_dir):
        assert TaskDepsConfig.load(temp_dir) == TaskDepsConfig()

    def test_save_and_load(self, temp_dir):
        config = TaskDepsConfig.from_dict({
            "store": {"use_file_storage": True},
            "cache": {"ttl_seconds": 30},
            "logging": {"level": "debug"},
        })
        config.save(temp_dir)

        assert get_config_path(temp_dir).exists()
        loaded = TaskDepsConfig.load(temp_dir)
        assert loaded == config
        assert loaded.store.use_file_storage is True
        assert loaded.cache.ttl_seconds == 30

    def test_invalid_json(self, temp_dir):
        path = get_config_path(temp_dir)
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            TaskDepsConfig.load(temp_dir)

    def test_unknown_key(self, temp_dir):
        path = get_config_path(temp_dir)
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"cache": {"size": 10}}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            TaskDepsConfig.load(temp_dir)

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            CacheConfig(ttl_seconds=0)
        with pytest.raises(ValueError):
            CacheConfig(check_period_seconds=-1)
        with pytest.raises(ValueError):
            LoggingConfig(level="loud")

    def test_paths(self, temp_dir):
        assert get_tasks_db_path(temp_dir) == temp_dir / ".taskdeps" / "index" / "tasks.db"
