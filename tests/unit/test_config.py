"""Tests for configuration defaults and logging setup"""
import logging

import pytest
from pipeline_cdk.config import LOG_LEVEL_ENV_VAR, PipelineCdkConfig, configure_logging
from tests.test_constants import InfraConfig


@pytest.fixture
def root_logger():
    """Root logger, restored to its previous level and handlers afterwards"""
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestDefaultConfig:
    """Test the default example configuration"""

    def test_defaults(self):
        config = PipelineCdkConfig.default()

        assert config.pipeline.pipeline_name == InfraConfig.PIPELINE_NAME
        assert config.build.exported_variables == [InfraConfig.EXPORTED_VARIABLE]
        assert config.approval.custom_data_variable == InfraConfig.EXPORTED_VARIABLE
        assert config.pipeline.artifact_store.replication_bucket_names == {}


class TestLoggingSetup:
    """Test root logger configuration from the environment"""

    def test_default_level_is_info(self, monkeypatch, root_logger):
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)

        configure_logging()

        assert root_logger.level == logging.INFO

    def test_level_name_is_case_insensitive(self, monkeypatch, root_logger):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "debug")

        configure_logging()

        assert root_logger.level == logging.DEBUG

    def test_unknown_level_is_rejected(self, monkeypatch, root_logger):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "verbose")

        with pytest.raises(ValueError, match="VERBOSE"):
            configure_logging()
