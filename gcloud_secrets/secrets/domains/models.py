"""Domain models for secret synchronization."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .naming import make_secret_name, resolve_key

DEFAULT_ENVIRONMENT_LABEL = "(default)"


@dataclass(frozen=True)
class SecretIdentifier:
    """A (folder, environment, key) triple addressing one remote secret."""
    folder: str
    key: str
    environment: Optional[str] = None

    @property
    def secret_id(self) -> str:
        return make_secret_name(self.folder, self.key, self.environment)


@dataclass
class EnvEntry:
    """A single KEY=value assignment parsed from an env file."""
    key: str
    value: str
    is_multiline: bool = False


@dataclass
class RepositoryCandidate:
    """A directory containing a .git directory."""
    path: str
    discovered_depth: int

    @property
    def name(self) -> str:
        return Path(self.path).resolve().name


@dataclass
class EnvFileCandidate:
    """An env file found directly under a repository root."""
    path: str
    filename: str
    is_ignored_by_vcs: bool


@dataclass
class DiscoveryResult:
    """Repositories found by a traversal plus any non-fatal warnings."""
    repositories: List[RepositoryCandidate] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        return [repo.path for repo in self.repositories]


@dataclass(frozen=True)
class RemoteSecretRecord:
    """Snapshot of one secret in the central project.

    ``folder`` and ``environment`` come from the secret's labels; the
    original env key comes from the ``key`` annotation when present.
    """
    full_name: str
    folder: Optional[str]
    environment: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def secret_id(self) -> str:
        return self.full_name.rsplit("/", 1)[-1]

    @property
    def key(self) -> str:
        return resolve_key(
            self.secret_id,
            self.folder or "",
            self.environment,
            self.annotations.get("key"),
        )


class ScanStatus(str, Enum):
    """Sync classification of one (repository, file, environment) tuple."""

    OK = "OK"
    """Every local key exists remotely with an equivalent value"""

    DIFF = "DIFF"
    """Local and remote disagree on keys or values"""

    NEW = "NEW"
    """Nothing registered remotely for this folder and environment"""


@dataclass(frozen=True)
class ScanResult:
    status: ScanStatus
    repository: str
    file: str
    environment: str
    local_key_count: int
    is_ignored_by_vcs: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "repository": self.repository,
            "file": self.file,
            "environment": self.environment,
            "local_key_count": self.local_key_count,
            "is_ignored_by_vcs": self.is_ignored_by_vcs,
        }


@dataclass
class ScanReport:
    """Ordered scan results plus aggregate counts."""
    results: List[ScanResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def _count(self, status: ScanStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def ok_count(self) -> int:
        return self._count(ScanStatus.OK)

    @property
    def diff_count(self) -> int:
        return self._count(ScanStatus.DIFF)

    @property
    def new_count(self) -> int:
        return self._count(ScanStatus.NEW)

    @property
    def not_ignored(self) -> List[ScanResult]:
        return [result for result in self.results if not result.is_ignored_by_vcs]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "totals": {
                "files": len(self.results),
                "ok": self.ok_count,
                "diff": self.diff_count,
                "new": self.new_count,
            },
            "warnings": list(self.warnings),
        }


@dataclass
class PushResult:
    """Outcome of uploading one env file to a folder."""
    folder: str
    environment: Optional[str] = None
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.created) + len(self.updated)


@dataclass
class Config:
    """Central project settings read from the per-user config file."""
    central_project: str = ""
    default_environment: Optional[str] = None
