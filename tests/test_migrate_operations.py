"""
Tests for the migrate workflow.
"""

import logging
from unittest.mock import Mock

import pytest

from appd_config_manager.core.config_entities import MigrationRequest
from appd_config_manager.core.entities import EntityInfo
from appd_config_manager.execution.migrate_operations import execute_migrate, migrate_application_config
from appd_config_manager.shared.config import settings_from_mapping
from appd_config_manager.shared.exceptions import ConfigError, HttpError, WorkflowError

SRC_URL = "https://source.saas.appdynamics.com"
DST_URL = "https://dest.saas.appdynamics.com"
EXPORTER_URL = "http://localhost:8080"


def make_settings(**overrides):
    config = {
        "appd_src_url": SRC_URL,
        "appd_src_account": "source",
        "appd_src_api_user": "exporter",
        "appd_src_api_password": "secret",
        "appd_dst_url": DST_URL,
        "appd_dst_account": "dest",
        "appd_dst_api_user": "importer",
        "appd_dst_api_password": "other-secret",
        "appd_application_names": "^(MyApp|Billing)$",
        "appd_dashboard_names": ".*",
        "output_dir": "/tmp/unused",
        "appd_application_config": "scopes,health-rules",
        "config_exporter_url": EXPORTER_URL,
        "overwrite_on_export": "true",
    }
    config.update(overrides)
    return settings_from_mapping(config, "migrate")


def make_client(src_apps, dst_apps):
    responses = {
        f"{EXPORTER_URL}/api/controllers": [{"id": 1, "url": SRC_URL}, {"id": 2, "url": DST_URL}],
        f"{EXPORTER_URL}/api/controllers/1/applications": src_apps,
        f"{EXPORTER_URL}/api/controllers/2/applications": dst_apps,
    }
    client = Mock()
    client.get_json.side_effect = lambda session, authenticated, url: responses[url]
    client.request.return_value = Mock(text="ok")
    return client


class TestMigrateApplicationConfig:
    """Test cases for the per-application migration loop."""

    def setup_method(self):
        self.template = MigrationRequest.template(1, 2, ["scopes"])

    def test_migrates_matching_names(self):
        exporter = Mock()
        summary = migrate_application_config(
            exporter, self.template, [EntityInfo("MyApp", 101)], [EntityInfo("MyApp", 202)]
        )

        migration = exporter.migrate_application_config.call_args.args[0]
        assert migration.src_application_id == 101
        assert migration.dest_application_id == 202
        assert summary.migrated == 1

    def test_missing_destination_is_skipped(self, caplog):
        exporter = Mock()
        with caplog.at_level(logging.WARNING):
            summary = migrate_application_config(
                exporter, self.template,
                [EntityInfo("MyApp", 101), EntityInfo("Billing", 102)],
                [EntityInfo("Billing", 302)],
            )

        assert ("Could not migrate application: MyApp not found on destination. "
                "Please create the application first.") in caplog.text
        assert summary.skipped_applications == ["MyApp"]
        assert summary.migrated == 1
        assert exporter.migrate_application_config.call_count == 1

    def test_failed_post_continues(self):
        exporter = Mock()
        exporter.migrate_application_config.side_effect = [HttpError("500"), Mock(text="ok")]
        summary = migrate_application_config(
            exporter, self.template,
            [EntityInfo("MyApp", 101), EntityInfo("Billing", 102)],
            [EntityInfo("MyApp", 201), EntityInfo("Billing", 202)],
        )
        assert summary.failed == 1
        assert summary.migrated == 1


class TestExecuteMigrate:
    """Test cases for execute_migrate."""

    def test_posts_one_request_per_matched_application(self):
        client = make_client(
            src_apps=[{"name": "MyApp", "id": 101}, {"name": "Billing", "id": 102}],
            dst_apps=[{"name": "Billing", "id": 302}, {"name": "MyApp", "id": 301}],
        )

        summary = execute_migrate(make_settings(), client)

        assert summary.migrated == 2
        posts = [c for c in client.request.call_args_list if c.args[2] == 'POST']
        assert posts[0].args[3] == f"{EXPORTER_URL}/api/rest/app-config"
        assert posts[0].kwargs["json"] == {
            "srcControllerId": 1,
            "destControllerId": 2,
            "srcApplicationId": 101,
            "destApplicationId": 301,
            "configNames": ["CONFIG20_SCOPES", "HEALTH_RULES"],
            "properties": {"overwrite": True, "createTier": False},
        }
        assert posts[1].kwargs["json"]["destApplicationId"] == 302

    def test_unknown_entity_fails_before_network(self):
        client = make_client([], [])
        with pytest.raises(ConfigError, match="Could not convert app config entity 'bogus'."):
            execute_migrate(make_settings(appd_application_config="scopes,bogus"), client)
        client.get_json.assert_not_called()
        client.request.assert_not_called()

    def test_account_config_not_implemented(self):
        client = make_client([{"name": "MyApp", "id": 101}], [{"name": "MyApp", "id": 301}])
        with pytest.raises(WorkflowError, match="Migrate Account Config is not yet implemented."):
            execute_migrate(make_settings(appd_account_config="email-templates"), client)

    def test_unregistered_destination(self):
        client = make_client([], [])
        with pytest.raises(WorkflowError, match=r"Is https://unknown\.example\.com configured\?"):
            execute_migrate(make_settings(appd_dst_url="https://unknown.example.com"), client)

    def test_export_settings_rejected(self):
        config_settings = settings_from_mapping({
            "appd_src_url": SRC_URL,
            "appd_src_account": "source",
            "appd_src_api_user": "exporter",
            "appd_src_api_password": "secret",
            "appd_application_names": ".*",
            "appd_dashboard_names": ".*",
            "output_dir": "/tmp/unused",
            "appd_application_config": "scopes",
            "config_exporter_url": EXPORTER_URL,
        }, "export")
        with pytest.raises(ConfigError):
            execute_migrate(config_settings, Mock())
