"""In-memory index of the central project's secrets, grouped by namespace."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Set

from .models import RemoteSecretRecord

logger = logging.getLogger(__name__)

DEFAULT_FETCH_WORKERS = 8


def group_key(folder: str, environment: Optional[str] = None) -> str:
    return f"{folder}|{environment or ''}"


class RemoteStateIndex:
    """Read-only snapshot of remote secrets keyed by folder and environment.

    Built once per invocation from a single listing. Secrets without a
    ``folder`` label are not part of any group.
    """

    def __init__(self, records: Iterable[RemoteSecretRecord] = ()):
        self._groups: Dict[str, List[RemoteSecretRecord]] = {}
        self._environments: Dict[str, Set[str]] = {}
        for record in records:
            if not record.folder:
                continue
            self._groups.setdefault(group_key(record.folder, record.environment), []).append(record)
            environments = self._environments.setdefault(record.folder, set())
            if record.environment:
                environments.add(record.environment)

    @classmethod
    def build(cls, store) -> "RemoteStateIndex":
        """List every secret in the store once and index it."""
        records = store.list_secrets()
        index = cls(records)
        logger.debug(f"Indexed {len(records)} secrets into {len(index._groups)} groups")
        return index

    def group(self, folder: str, environment: Optional[str] = None) -> List[RemoteSecretRecord]:
        return list(self._groups.get(group_key(folder, environment), []))

    def environments_for(self, folder: str) -> Set[str]:
        return set(self._environments.get(folder, set()))

    def folders(self) -> List[str]:
        return sorted(self._environments)


def fetch_values(
    store,
    records: List[RemoteSecretRecord],
    max_workers: int = DEFAULT_FETCH_WORKERS,
) -> Dict[str, str]:
    """
    Fetch the latest value of every record, keyed by decoded env key.

    Lookups run in a thread pool. Records without a version are left out;
    any other error from the store propagates.
    """
    if not records:
        return {}

    workers = max(1, min(max_workers, len(records)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        values = list(executor.map(store.fetch_latest, records))

    remote_values: Dict[str, str] = {}
    for record, value in zip(records, values):
        if value is None:
            continue
        remote_values[record.key] = value
    return remote_values
