"""Workflows for managing a folder's secrets in the central project."""
import logging
import subprocess
from typing import Dict, List, Optional

from ..domains.config_loader import save_config
from ..domains.env_parser import format_env, parse_env_file
from ..domains.models import Config, EnvEntry, PushResult, RemoteSecretRecord
from ..domains.naming import make_secret_name
from ..domains.remote_index import RemoteStateIndex

logger = logging.getLogger(__name__)

SECRET_MANAGER_API = "secretmanager.googleapis.com"


def init_config(
    project_id: str,
    default_environment: Optional[str] = None,
    enable_api: bool = False,
    config_path: Optional[str] = None,
) -> str:
    """
    Write the central project configuration.

    Args:
        project_id: GCP project holding every folder's secrets
        default_environment: Environment used by pull/push when none is given
        enable_api: Also run ``gcloud services enable`` for Secret Manager
        config_path: Override the config file location

    Returns:
        Path of the written config file
    """
    if enable_api:
        try:
            subprocess.run(
                ["gcloud", "services", "enable", SECRET_MANAGER_API, f"--project={project_id}"],
                capture_output=True, text=True, check=True
            )
            logger.info(f"Enabled {SECRET_MANAGER_API} in {project_id}")
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning(f"Failed to enable {SECRET_MANAGER_API} (it may already be enabled): {e}")

    config = Config(
        central_project=project_id,
        default_environment=default_environment.lower() if default_environment else None,
    )
    return str(save_config(config, config_path))


def _in_namespace(record: RemoteSecretRecord, folder: str, environment: Optional[str]) -> bool:
    return record.folder == folder and (record.environment or None) == (environment or None)


def folder_records(store, folder: str, environment: Optional[str] = None) -> List[RemoteSecretRecord]:
    """Records of one folder in one environment (None for the default namespace)."""
    return [record for record in store.list_secrets(folder=folder) if _in_namespace(record, folder, environment)]


def list_folders(store) -> Dict[str, List[str]]:
    """Return every folder with the environments it has secrets in."""
    index = RemoteStateIndex.build(store)
    return {folder: sorted(index.environments_for(folder)) for folder in index.folders()}


def list_keys(store, folder: str, environment: Optional[str] = None) -> List[str]:
    """Return the sorted keys stored for a folder and environment."""
    return sorted(record.key for record in folder_records(store, folder, environment))


def pull_env(store, folder: str, environment: Optional[str] = None) -> str:
    """
    Fetch a folder's secrets as env file text.

    Secrets without any version are skipped. Keys are sorted.
    """
    entries = []
    for record in sorted(folder_records(store, folder, environment), key=lambda r: r.key):
        value = store.fetch_latest(record)
        if value is None:
            logger.warning(f"Secret {record.secret_id} has no version, skipping")
            continue
        entries.append(EnvEntry(key=record.key, value=value, is_multiline="\n" in value))
    return format_env(entries)


def push_env(store, folder: str, content: str, environment: Optional[str] = None) -> PushResult:
    """
    Upload env file content to a folder.

    When a key is assigned more than once the last assignment is uploaded.
    Empty values are skipped because Secret Manager rejects empty payloads.
    """
    result = PushResult(folder=folder, environment=environment)
    values: Dict[str, str] = {}
    for entry in parse_env_file(content):
        values[entry.key] = entry.value

    for key, value in values.items():
        if value == "":
            logger.warning(f"Skipping {key}: empty value")
            result.skipped.append(key)
            continue
        action = store.upsert_secret(folder, key, value, environment)
        if action == "created":
            result.created.append(key)
        else:
            result.updated.append(key)

    logger.info(f"Uploaded {result.count} secrets to {make_secret_name(folder, '*', environment)}")
    return result


def delete_secrets(
    store,
    folder: str,
    key: Optional[str] = None,
    environment: Optional[str] = None,
) -> List[str]:
    """
    Delete one key, or every key of a folder and environment.

    Returns:
        Deleted keys (empty if nothing matched)
    """
    records = folder_records(store, folder, environment)
    if key is not None:
        records = [record for record in records if record.key == key]

    deleted = []
    for record in records:
        store.delete_secret(record)
        deleted.append(record.key)
    return deleted
