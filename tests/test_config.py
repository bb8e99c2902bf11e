"""
Configuration testing module.

Covers environment selection, configuration validation and the application
factory's handling of configuration overrides.
"""

import pytest
from flask import Flask

from immigration_admin.app import create_app
from immigration_admin.business.exceptions import ConfigurationError
from immigration_admin.config.settings import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    config_map,
    get_config,
    validate_configuration
)


class TestGetConfig:

    @pytest.mark.parametrize('environment, expected', [
        ('development', DevelopmentConfig),
        ('dev', DevelopmentConfig),
        ('Testing', TestingConfig),
        ('prod', ProductionConfig),
    ])
    def test_environment_names_and_aliases(self, environment, expected):
        assert get_config(environment) is expected

    def test_defaults_to_flask_env(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'testing')

        assert get_config() is TestingConfig

    def test_unknown_environment_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_config('staging')

        assert exc_info.value.error_code == "UNSUPPORTED_ENVIRONMENT"

    def test_every_config_is_mapped(self):
        assert set(config_map.values()) == {DevelopmentConfig, TestingConfig, ProductionConfig}


class TestValidateConfiguration:

    def test_testing_config_is_valid(self):
        assert validate_configuration(TestingConfig) == []

    def test_issues_reported(self):
        class BrokenConfig(TestingConfig):
            SECRET_KEY = 'short'
            MONGODB_URI = ''
            LOG_FORMAT = 'xml'
            DEFAULT_LOCALE = 'fr'

        issues = validate_configuration(BrokenConfig)

        assert issues == [
            "SECRET_KEY should be at least 32 characters long",
            "MONGODB_URI is required",
            "LOG_FORMAT must be one of ['json', 'console']",
            "DEFAULT_LOCALE must be one of ['en', 'pt']",
        ]

    def test_linked_fields_cache_bounds_checked(self):
        class UnboundedCacheConfig(TestingConfig):
            LINKED_FIELDS_CACHE_MAX_ENTRIES = 0
            LINKED_FIELDS_CACHE_TTL_SECONDS = 0

        assert validate_configuration(UnboundedCacheConfig) == [
            "LINKED_FIELDS_CACHE_MAX_ENTRIES must be at least 1",
            "LINKED_FIELDS_CACHE_TTL_SECONDS must be positive",
        ]

    def test_production_requires_secret_key(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', '')
        monkeypatch.setattr(ProductionConfig, 'MONGODB_URI', 'mongodb://db:27017')

        with pytest.raises(ConfigurationError) as exc_info:
            ProductionConfig.init_app(Flask(__name__))

        assert exc_info.value.error_code == "INVALID_CONFIGURATION"
        assert "SECRET_KEY is required" in exc_info.value.context['issues']


class TestApplicationFactory:

    def test_testing_configuration_applied(self, mock_store):
        app = create_app('testing', document_store=mock_store)

        assert app.config['TESTING'] is True
        assert app.config['MONGODB_DATABASE'] == TestingConfig.MONGODB_DATABASE
        assert {'api', 'health'} <= set(app.blueprints)

    def test_overrides_win_over_environment_class(self, mock_store):
        app = create_app('testing', document_store=mock_store, DEFAULT_LOCALE='pt')

        assert app.config['DEFAULT_LOCALE'] == 'pt'
