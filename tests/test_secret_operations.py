"""Tests for list / pull / push / delete / init workflows."""
import subprocess
from unittest import mock

from gcloud_secrets.secrets.domains.config_loader import load_config
from gcloud_secrets.secrets.workflows import secret_operations
from gcloud_secrets.secrets.workflows.secret_operations import (
    delete_secrets,
    init_config,
    list_folders,
    list_keys,
    pull_env,
    push_env,
)


class TestListing:
    def test_list_folders_with_environments(self, store):
        store.add("app", "A", "1")
        store.add("app", "A", "1", environment="prod")
        store.add("api", "B", "2", environment="dev")

        assert list_folders(store) == {"api": ["dev"], "app": ["prod"]}

    def test_list_keys_per_environment(self, store):
        store.add("app", "B", "1")
        store.add("app", "A", "1")
        store.add("app", "C", "1", environment="prod")

        assert list_keys(store, "app") == ["A", "B"]
        assert list_keys(store, "app", "prod") == ["C"]
        assert list_keys(store, "missing") == []


class TestPull:
    def test_pull_renders_sorted_env_text(self, store):
        store.add("app", "B", "two")
        store.add("app", "A", "one")
        store.add("app", "CERT", "l1\nl2")

        assert pull_env(store, "app") == "A=one\nB=two\nCERT=`l1\nl2`"

    def test_pull_skips_secrets_without_versions(self, store):
        store.add("app", "A", "one")
        store.add("app", "EMPTY")
        assert pull_env(store, "app") == "A=one"

    def test_pull_only_selected_environment(self, store):
        store.add("app", "A", "default")
        store.add("app", "A", "prod-value", environment="prod")
        assert pull_env(store, "app", "prod") == "A=prod-value"


class TestPush:
    def test_push_creates_then_updates(self, store):
        first = push_env(store, "app", "A=1\nB=2\n", environment="dev")
        assert first.created == ["A", "B"]
        assert first.updated == []

        second = push_env(store, "app", "A=3\n", environment="dev")
        assert second.updated == ["A"]
        assert store.values["app_dev_A"] == "3"
        assert store.records["app_dev_A"].environment == "dev"

    def test_push_multiline_and_quoted_values(self, store):
        push_env(store, "app", 'CERT=`l1\nl2`\nNAME="quoted"\n')
        assert store.values["app_CERT"] == "l1\nl2"
        assert store.values["app_NAME"] == "quoted"

    def test_push_last_assignment_wins(self, store):
        result = push_env(store, "app", "A=1\nA=2\n")
        assert result.count == 1
        assert store.values["app_A"] == "2"

    def test_push_skips_empty_values(self, store):
        result = push_env(store, "app", "A=\nB=1\n")
        assert result.skipped == ["A"]
        assert "app_A" not in store.records


class TestDelete:
    def test_delete_single_key(self, store):
        store.add("app", "A", "1")
        store.add("app", "B", "2")
        assert delete_secrets(store, "app", key="A") == ["A"]
        assert list(store.records) == ["app_B"]

    def test_delete_folder_environment_only(self, store):
        store.add("app", "A", "1")
        store.add("app", "A", "1", environment="prod")
        store.add("app", "B", "1", environment="prod")

        assert sorted(delete_secrets(store, "app", environment="prod")) == ["A", "B"]
        assert list(store.records) == ["app_A"]

    def test_delete_nothing(self, store):
        assert delete_secrets(store, "app", key="A") == []


class TestInitConfig:
    def test_writes_config(self, temp_home):
        path = init_config("central-project", default_environment="Dev")

        config = load_config()
        assert path == str(temp_home / ".secrets-manager.conf")
        assert config.central_project == "central-project"
        assert config.default_environment == "dev"

    def test_enable_api_failure_is_not_fatal(self, temp_home):
        error = subprocess.CalledProcessError(1, ["gcloud"])
        with mock.patch.object(secret_operations.subprocess, "run", side_effect=error) as run:
            init_config("central-project", enable_api=True)

        run.assert_called_once()
        assert run.call_args[0][0][:3] == ["gcloud", "services", "enable"]
        assert load_config().central_project == "central-project"
