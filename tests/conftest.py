"""Shared fixtures: an in-memory stand-in for the Secret Manager client."""
from pathlib import Path

import pytest

from gcloud_secrets.secrets.domains.models import RemoteSecretRecord
from gcloud_secrets.secrets.domains.naming import make_secret_name

PROJECT = "central-project"


class FakeSecretStore:
    """Implements the GCPSecretClient interface over plain dicts."""

    def __init__(self, project_id=PROJECT):
        self.project_id = project_id
        self.records = {}
        self.values = {}
        self.fetch_calls = []
        self.fetch_errors = {}

    def add(self, folder, key, value=None, environment=None, annotate=True, labels=None):
        secret_id = make_secret_name(folder, key, environment)
        if labels is None:
            labels = {"folder": folder}
            if environment:
                labels["environment"] = environment
        record = RemoteSecretRecord(
            full_name=f"projects/{self.project_id}/secrets/{secret_id}",
            folder=labels.get("folder"),
            environment=labels.get("environment"),
            labels=labels,
            annotations={"key": key} if annotate else {},
        )
        self.records[secret_id] = record
        if value is not None:
            self.values[secret_id] = value
        return record

    def list_secrets(self, folder=None):
        return [r for r in self.records.values() if folder is None or r.folder == folder]

    def get_record(self, secret_id):
        return self.records.get(secret_id)

    def fetch_latest(self, record):
        self.fetch_calls.append(record.secret_id)
        if record.secret_id in self.fetch_errors:
            raise self.fetch_errors[record.secret_id]
        return self.values.get(record.secret_id)

    def upsert_secret(self, folder, key, value, environment=None):
        secret_id = make_secret_name(folder, key, environment)
        action = "updated"
        if secret_id not in self.records:
            self.add(folder, key, environment=environment)
            action = "created"
        self.values[secret_id] = value
        return action

    def delete_secret(self, record):
        self.records.pop(record.secret_id, None)
        self.values.pop(record.secret_id, None)


@pytest.fixture
def store():
    return FakeSecretStore()


@pytest.fixture
def never_ignored():
    return lambda repo_path, filename: False


@pytest.fixture
def make_repo(tmp_path):
    """Create a git repository (a directory with .git/) with env files."""
    def _make_repo(relative_path, files=None):
        repo = tmp_path / relative_path
        (repo / ".git").mkdir(parents=True)
        for filename, content in (files or {}).items():
            (repo / filename).write_text(content)
        return repo
    return _make_repo


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("SECRETS_MANAGER_CONFIG", raising=False)
    monkeypatch.delenv("SECRETS_CENTRAL_PROJECT", raising=False)
    monkeypatch.delenv("DEFAULT_ENVIRONMENT", raising=False)
    return fake_home
