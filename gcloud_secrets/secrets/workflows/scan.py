"""Scan workflow: compare local env files with the central project.

Every (repository, env file, environment) tuple is classified as:

- NEW:  nothing is registered remotely for the folder and environment
- DIFF: a key is missing on either side or a value differs
- OK:   local and remote agree

The scan is read-only against both the filesystem and the store.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..domains.discovery import DEFAULT_MAX_DEPTH, IgnoreOracle, find_env_files, find_repositories, git_is_ignored
from ..domains.env_parser import parse_env_file
from ..domains.models import (
    DEFAULT_ENVIRONMENT_LABEL,
    EnvEntry,
    EnvFileCandidate,
    ScanReport,
    ScanResult,
    ScanStatus,
)
from ..domains.naming import normalize_folder
from ..domains.remote_index import DEFAULT_FETCH_WORKERS, RemoteStateIndex, fetch_values

logger = logging.getLogger(__name__)


def normalize_value(value: str) -> str:
    return value.replace("\r\n", "\n").strip()


def values_equal(local: str, remote: str) -> bool:
    """Compare values ignoring CRLF vs LF and surrounding whitespace."""
    return normalize_value(local) == normalize_value(remote)


def local_values(entries: List[EnvEntry]) -> Dict[str, str]:
    """Collapse parsed entries into a key -> value map; the last assignment wins.

    Earlier assignments of a duplicated key are not compared, so a stale first
    value does not make the file DIFF.
    """
    values: Dict[str, str] = {}
    for entry in entries:
        values[entry.key] = entry.value
    return values


def classify(local: Dict[str, str], remote_keys: set, remote_values: Dict[str, str]) -> ScanStatus:
    """
    Classify one local file against a non-empty remote group.

    Args:
        local: Local key -> value map
        remote_keys: Every key registered in the group
        remote_values: Latest values of the keys that have a version
    """
    for key, value in local.items():
        if key not in remote_keys or key not in remote_values:
            return ScanStatus.DIFF
        if not values_equal(value, remote_values[key]):
            return ScanStatus.DIFF

    if any(key not in local for key in remote_keys):
        return ScanStatus.DIFF

    return ScanStatus.OK


def _read_entries(env_file: EnvFileCandidate) -> List[EnvEntry]:
    """Parse an env file; undecodable bytes become U+FFFD. Raises OSError."""
    content = Path(env_file.path).read_text(encoding="utf-8", errors="replace")
    if not content.strip():
        return []
    return parse_env_file(content)


class Reconciler:
    """Classifies local env files against a RemoteStateIndex."""

    def __init__(self, store, index: RemoteStateIndex, max_workers: int = DEFAULT_FETCH_WORKERS):
        self.store = store
        self.index = index
        self.max_workers = max_workers
        self._remote_cache: Dict[Tuple[str, Optional[str]], Tuple[set, Dict[str, str]]] = {}

    def environments_to_check(self, folder: str, environment: Optional[str] = None) -> List[Optional[str]]:
        """The explicit environment, or the default namespace plus every remote one."""
        if environment:
            return [environment]
        return [None] + sorted(self.index.environments_for(folder))

    def _remote_state(self, folder: str, environment: Optional[str]) -> Tuple[set, Dict[str, str]]:
        cache_key = (folder, environment)
        if cache_key not in self._remote_cache:
            records = self.index.group(folder, environment)
            remote_keys = {record.key for record in records}
            remote_values = fetch_values(self.store, records, max_workers=self.max_workers)
            self._remote_cache[cache_key] = (remote_keys, remote_values)
        return self._remote_cache[cache_key]

    def reconcile_file(
        self,
        repository: str,
        env_file: EnvFileCandidate,
        entries: List[EnvEntry],
        environment: Optional[str] = None,
    ) -> List[ScanResult]:
        """Classify one parsed env file for every applicable environment."""
        folder = normalize_folder(repository)
        local = local_values(entries)
        results = []

        for env in self.environments_to_check(folder, environment):
            if not self.index.group(folder, env):
                status = ScanStatus.NEW
            else:
                remote_keys, remote_values = self._remote_state(folder, env)
                status = classify(local, remote_keys, remote_values)

            results.append(
                ScanResult(
                    status=status,
                    repository=repository,
                    file=env_file.filename,
                    environment=env or DEFAULT_ENVIRONMENT_LABEL,
                    local_key_count=len(entries),
                    is_ignored_by_vcs=env_file.is_ignored_by_vcs,
                )
            )
        return results


def scan(
    base_path: str,
    store,
    environment: Optional[str] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    is_ignored: IgnoreOracle = git_is_ignored,
    index: Optional[RemoteStateIndex] = None,
    max_workers: int = DEFAULT_FETCH_WORKERS,
) -> ScanReport:
    """
    Scan repositories below base_path and compare their env files with the store.

    Args:
        base_path: Directory to search for git repositories
        store: Remote secret store (list_secrets / fetch_latest)
        environment: Only check this environment
        max_depth: Discovery depth limit
        is_ignored: VCS ignore oracle
        index: Prebuilt remote index (built from the store if omitted)
        max_workers: Parallel value lookups per remote group

    Returns:
        ScanReport with results in repository, file, environment order

    Raises:
        Any store error other than a missing secret version
    """
    discovery = find_repositories(base_path, max_depth=max_depth)
    for warning in discovery.warnings:
        logger.warning(f"Skipped directory {warning}")

    if index is None:
        index = RemoteStateIndex.build(store)
    reconciler = Reconciler(store, index, max_workers=max_workers)
    report = ScanReport(warnings=list(discovery.warnings))

    for repo in discovery.repositories:
        env_files = find_env_files(repo.path, is_ignored=is_ignored)
        if not env_files:
            continue

        for env_file in env_files:
            try:
                entries = _read_entries(env_file)
            except OSError as e:
                logger.warning(f"Cannot read {env_file.path}: {e}")
                report.warnings.append(f"{env_file.path}: {e}")
                continue
            if not entries:
                continue
            report.results.extend(reconciler.reconcile_file(repo.name, env_file, entries, environment))

    logger.info(
        f"Scanned {len(report.results)} files: {report.ok_count} ok, "
        f"{report.diff_count} diff, {report.new_count} new"
    )
    return report
