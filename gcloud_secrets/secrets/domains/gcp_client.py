"""GCP Secret Manager client wrapper."""
import logging
from typing import List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .models import RemoteSecretRecord
from .naming import make_secret_name

logger = logging.getLogger(__name__)

FOLDER_LABEL = "folder"
ENVIRONMENT_LABEL = "environment"
KEY_ANNOTATION = "key"


def record_from_secret(secret) -> RemoteSecretRecord:
    """Build a RemoteSecretRecord from a secretmanager.Secret message."""
    labels = dict(secret.labels or {})
    annotations = dict(getattr(secret, "annotations", None) or {})
    return RemoteSecretRecord(
        full_name=secret.name,
        folder=labels.get(FOLDER_LABEL),
        environment=labels.get(ENVIRONMENT_LABEL) or None,
        labels=labels,
        annotations=annotations,
    )


class GCPSecretClient:
    """Wrapper around GCP Secret Manager for one central project."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}"

    def secret_path(self, secret_id: str) -> str:
        return f"{self.parent}/secrets/{secret_id}"

    def list_secrets(self, folder: Optional[str] = None) -> List[RemoteSecretRecord]:
        """
        List secrets in the central project.

        Args:
            folder: Only return secrets labelled with this folder

        Returns:
            Records with labels and annotations, in listing order
        """
        request = {"parent": self.parent}
        if folder:
            request["filter"] = f"labels.{FOLDER_LABEL}={folder}"
        records = [record_from_secret(secret) for secret in self.client.list_secrets(request=request)]
        logger.debug(f"Listed {len(records)} secrets in {self.parent}")
        return records

    def get_record(self, secret_id: str) -> Optional[RemoteSecretRecord]:
        """Return the record for a secret ID, or None if it does not exist."""
        try:
            secret = self.client.get_secret(request={"name": self.secret_path(secret_id)})
        except gcp_exceptions.NotFound:
            return None
        return record_from_secret(secret)

    def fetch_latest(self, record: RemoteSecretRecord) -> Optional[str]:
        """
        Fetch the latest version of a secret.

        Returns:
            Secret value, or None if the secret has no version

        Raises:
            google.api_core.exceptions.GoogleAPIError: On any failure other
                than NotFound
        """
        name = f"{record.full_name}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": name})
        except gcp_exceptions.NotFound:
            logger.debug(f"No version found for {record.secret_id}")
            return None
        return response.payload.data.decode("UTF-8")

    def upsert_secret(self, folder: str, key: str, value: str, environment: Optional[str] = None) -> str:
        """
        Store a value, creating the secret first if needed.

        Returns:
            "created" or "updated"
        """
        secret_id = make_secret_name(folder, key, environment)
        secret_name = self.secret_path(secret_id)

        action = "updated"
        if self.get_record(secret_id) is None:
            labels = {FOLDER_LABEL: folder}
            if environment:
                labels[ENVIRONMENT_LABEL] = environment
            self.client.create_secret(
                request={
                    "parent": self.parent,
                    "secret_id": secret_id,
                    "secret": {
                        "replication": {"automatic": {}},
                        "labels": labels,
                        "annotations": {KEY_ANNOTATION: key},
                    },
                }
            )
            logger.info(f"Created secret {secret_id}")
            action = "created"

        self.client.add_secret_version(
            request={"parent": secret_name, "payload": {"data": value.encode("UTF-8")}}
        )
        logger.debug(f"Added version to {secret_id}")
        return action

    def delete_secret(self, record: RemoteSecretRecord) -> None:
        """Delete a secret and all of its versions."""
        self.client.delete_secret(request={"name": record.full_name})
        logger.info(f"Deleted secret {record.secret_id}")
