"""Discovery of git repositories and the env files inside them."""
import os
import logging
import subprocess
from typing import Callable, List

from .models import DiscoveryResult, EnvFileCandidate, RepositoryCandidate

logger = logging.getLogger(__name__)

ENV_FILENAMES = (".env", ".dev.vars", ".env.local", ".env.production")
VCS_DIRECTORY = ".git"
VENDOR_DIRECTORY = "node_modules"
DEFAULT_MAX_DEPTH = 5

IgnoreOracle = Callable[[str, str], bool]


def git_is_ignored(repo_path: str, filename: str) -> bool:
    """
    Check whether git ignores a file in a repository.

    Runs ``git -C <repo> check-ignore -q <filename>``. Exit code 0 means
    ignored; any other exit code or a failure to run git means not ignored.
    """
    try:
        result = subprocess.run(
            ["git", "-C", repo_path, "check-ignore", "-q", filename],
            capture_output=True,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git check-ignore failed for {repo_path}/{filename}: {e}")
        return False
    return result.returncode == 0


def _walk(path: str, max_depth: int, depth: int, result: DiscoveryResult) -> None:
    if depth > max_depth:
        return

    try:
        with os.scandir(path) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError as e:
        logger.debug(f"Skipping unreadable directory {path}: {e}")
        result.warnings.append(f"{path}: {e}")
        return

    for entry in entries:
        name = entry.name
        if name.startswith(".") and name != VCS_DIRECTORY:
            continue
        if name == VENDOR_DIRECTORY:
            continue
        try:
            if entry.is_symlink() or not entry.is_dir(follow_symlinks=False):
                continue
        except OSError:
            continue

        if name == VCS_DIRECTORY:
            result.repositories.append(RepositoryCandidate(path=path, discovered_depth=depth))
        else:
            _walk(entry.path, max_depth, depth + 1, result)


def find_repositories(base_path: str, max_depth: int = DEFAULT_MAX_DEPTH) -> DiscoveryResult:
    """
    Find git repositories below a directory.

    Args:
        base_path: Directory to start from (depth 0)
        max_depth: Deepest directory level whose children are still listed

    Returns:
        DiscoveryResult with repositories in traversal order and a warning
        for every directory that could not be listed

    Behavior:
        - A directory containing ``.git`` is a repository; ``.git`` itself
          is never entered
        - Hidden directories, node_modules and symlinks are skipped
        - Listing errors never propagate
    """
    result = DiscoveryResult()
    _walk(str(base_path), max_depth, 0, result)
    logger.debug(f"Found {len(result.repositories)} repositories under {base_path}")
    return result


def find_env_files(repo_path: str, is_ignored: IgnoreOracle = git_is_ignored) -> List[EnvFileCandidate]:
    """List the known env files present directly under a repository."""
    env_files = []
    for filename in ENV_FILENAMES:
        file_path = os.path.join(repo_path, filename)
        if not os.path.exists(file_path):
            continue
        try:
            ignored = bool(is_ignored(repo_path, filename))
        except Exception as e:
            logger.debug(f"Ignore check failed for {file_path}: {e}")
            ignored = False
        env_files.append(EnvFileCandidate(path=file_path, filename=filename, is_ignored_by_vcs=ignored))
    return env_files
