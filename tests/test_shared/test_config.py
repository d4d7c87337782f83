"""
Tests for configuration loading.

This module contains test cases for the shell-style config file loader
and the Settings it produces.
"""

import os
import tempfile
import textwrap
from pathlib import Path

import pytest

from appd_config_manager.shared.config import (
    REQUIRED_DESTINATION_KEYS,
    REQUIRED_SOURCE_KEYS,
    Settings,
    clean_entity_list,
    load_settings,
    settings_from_mapping,
)
from appd_config_manager.shared.exceptions import ConfigError


def base_config():
    return {
        "appd_src_url": "https://source.saas.appdynamics.com",
        "appd_src_account": "source",
        "appd_src_api_user": "exporter",
        "appd_src_api_password": "secret",
        "appd_application_names": "MyApp",
        "appd_dashboard_names": ".*",
        "output_dir": "/tmp/appd-backups",
        "appd_application_config": "scopes,health-rules",
        "config_exporter_url": "http://localhost:8080",
    }


def migrate_config():
    config = base_config()
    config.update({
        "appd_dst_url": "https://dest.saas.appdynamics.com",
        "appd_dst_account": "dest",
        "appd_dst_api_user": "importer",
        "appd_dst_api_password": "other-secret",
    })
    return config


class TestLoadSettings:
    """Test cases for load_settings with real files."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        for name in os.listdir(self.temp_dir):
            os.unlink(os.path.join(self.temp_dir, name))
        os.rmdir(self.temp_dir)

    def write_config(self, content):
        path = os.path.join(self.temp_dir, "appd_cfg_manager.conf")
        with open(path, "w", encoding="utf-8") as f:
            f.write(textwrap.dedent(content))
        return path

    def test_load_shell_style_file(self):
        """Test quoted, empty and multi-line values are parsed like a sourced shell file."""
        path = self.write_config("""
            # source controller
            appd_src_url=https://source.saas.appdynamics.com/
            appd_src_account=source
            appd_src_api_user=exporter
            appd_src_api_password='p@ss word'
            appd_src_proxy=
            appd_application_names='^My App$'
            appd_dashboard_names=".*"
            appd_application_config="
              scopes,
              health-rules,
              policies"
            appd_account_config=''
            output_dir=/tmp/backups
            config_exporter_url=http://localhost:8080/
            overwrite_on_export=true
            """)

        settings = load_settings(path, "export")

        assert isinstance(settings, Settings)
        assert settings.source.url == "https://source.saas.appdynamics.com"
        assert settings.source.api_password == "p@ss word"
        assert settings.source.proxy is None
        assert settings.application_names == "^My App$"
        assert settings.application_config == ("scopes", "health-rules", "policies")
        assert settings.account_config == ()
        assert settings.output_dir == Path("/tmp/backups")
        assert settings.config_exporter_url == "http://localhost:8080"
        assert settings.overwrite_on_export is True
        assert settings.create_tier_on_export is False
        assert settings.destination is None

    def test_missing_file(self):
        """Test an unreadable config file fails with ConfigError."""
        with pytest.raises(ConfigError, match="is not readable"):
            load_settings(os.path.join(self.temp_dir, "missing.conf"), "export")

    def test_directory_is_not_a_config_file(self):
        """Test a directory path fails with ConfigError."""
        with pytest.raises(ConfigError, match="is not readable"):
            load_settings(self.temp_dir, "export")


class TestSettingsFromMapping:
    """Test cases for required key validation."""

    @pytest.mark.parametrize("key", REQUIRED_SOURCE_KEYS)
    def test_missing_required_key(self, key):
        """Test every required source key is reported by name."""
        config = base_config()
        del config[key]
        with pytest.raises(ConfigError, match=f"Missing required config entry: {key}$"):
            settings_from_mapping(config, "export")

    @pytest.mark.parametrize("key", REQUIRED_SOURCE_KEYS)
    def test_empty_required_key(self, key):
        """Test an empty value counts as missing."""
        config = base_config()
        config[key] = "  "
        with pytest.raises(ConfigError, match=key):
            settings_from_mapping(config, "export")

    def test_missing_exporter_url(self):
        config = base_config()
        del config["config_exporter_url"]
        with pytest.raises(ConfigError, match="config_exporter_url"):
            settings_from_mapping(config, "export")

    def test_missing_both_entity_lists(self):
        """Test omitting both application and account config fails."""
        config = base_config()
        del config["appd_application_config"]
        with pytest.raises(ConfigError, match="appd_application_config or appd_account_config"):
            settings_from_mapping(config, "export")

    def test_account_config_alone_is_enough(self):
        config = base_config()
        del config["appd_application_config"]
        config["appd_account_config"] = "dashboards, email-templates"
        settings = settings_from_mapping(config, "export")
        assert settings.application_config == ()
        assert settings.account_config == ("dashboards", "email-templates")
        assert settings.requires_login_cookie is True

    def test_fail_fast_reports_first_missing_key(self):
        """Test only the first missing key in check order is reported."""
        config = base_config()
        del config["appd_src_account"]
        del config["output_dir"]
        with pytest.raises(ConfigError) as exc_info:
            settings_from_mapping(config, "export")
        assert "appd_src_account" in str(exc_info.value)
        assert "output_dir" not in str(exc_info.value)

    @pytest.mark.parametrize("key", REQUIRED_DESTINATION_KEYS)
    def test_migrate_requires_destination(self, key):
        """Test migrate mode needs every destination key."""
        config = migrate_config()
        del config[key]
        with pytest.raises(ConfigError, match=key):
            settings_from_mapping(config, "migrate")

    def test_export_ignores_destination(self):
        settings = settings_from_mapping(base_config(), "export")
        assert settings.destination is None

    def test_migrate_builds_destination(self):
        config = migrate_config()
        config["appd_dst_proxy"] = "http://proxy:3128"
        settings = settings_from_mapping(config, "migrate")
        assert settings.destination.url == "https://dest.saas.appdynamics.com"
        assert settings.destination.api_user == "importer"
        assert settings.destination.account == "dest"
        assert settings.destination.proxy == "http://proxy:3128"

    def test_unknown_mode(self):
        with pytest.raises(ConfigError, match="Unknown mode"):
            settings_from_mapping(base_config(), "import")

    def test_invalid_boolean(self):
        config = base_config()
        config["create_tier_on_export"] = "yes"
        with pytest.raises(ConfigError, match="create_tier_on_export"):
            settings_from_mapping(config, "export")

    def test_invalid_output_name_mode(self):
        config = base_config()
        config["output_name_mode"] = "uuid"
        with pytest.raises(ConfigError, match="output_name_mode"):
            settings_from_mapping(config, "export")

    def test_timeouts(self):
        config = base_config()
        config["http_timeout"] = "15"
        settings = settings_from_mapping(config, "export")
        assert settings.http_timeout == 15.0
        assert settings.config_exporter_timeout == 60.0

    def test_invalid_timeout(self):
        config = base_config()
        config["http_timeout"] = "-1"
        with pytest.raises(ConfigError, match="http_timeout"):
            settings_from_mapping(config, "export")

    @pytest.mark.parametrize("key", ["appd_application_names", "appd_dashboard_names", "appd_src_url"])
    def test_invalid_regex(self, key):
        """Test a value used as a regular expression must compile."""
        config = base_config()
        config[key] = "MyApp(["
        with pytest.raises(ConfigError, match=f"Invalid value for {key}"):
            settings_from_mapping(config, "export")

    def test_invalid_destination_url_regex(self):
        config = migrate_config()
        config["appd_dst_url"] = "https://dest(.example.com"
        with pytest.raises(ConfigError, match="Invalid value for appd_dst_url"):
            settings_from_mapping(config, "migrate")

    def test_requires_login_cookie_only_for_dashboards(self):
        config = base_config()
        config["appd_account_config"] = "email-templates,http-templates"
        assert settings_from_mapping(config, "export").requires_login_cookie is False


class TestCleanEntityList:
    """Test cases for entity list normalisation."""

    def test_strips_whitespace_and_newlines(self):
        assert clean_entity_list(" scopes ,\n health-rules,\n\tpolicies\n") == ("scopes", "health-rules", "policies")

    def test_keeps_order_and_duplicates(self):
        assert clean_entity_list("policies,actions,policies") == ("policies", "actions", "policies")

    def test_drops_empty_tokens(self):
        assert clean_entity_list("scopes,,rules,") == ("scopes", "rules")

    def test_empty_values(self):
        assert clean_entity_list(None) == ()
        assert clean_entity_list("") == ()
