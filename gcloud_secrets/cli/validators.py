"""Input validation for CLI arguments."""
import re
import sys

from gcloud_secrets.secrets.domains.naming import make_secret_name

MAX_SECRET_ID_LENGTH = 255

_FOLDER_PATTERN = re.compile(r"^[a-z0-9_-]+$")
_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ENVIRONMENT_PATTERN = re.compile(r"^[a-z][a-z0-9-]*$")
_PROJECT_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")


def _fail(lines) -> None:
    for line in lines:
        print(line, file=sys.stderr)
    sys.exit(2)


def validate_folder_name(folder: str) -> None:
    """
    Validate a folder is a normalized slug.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not folder or not _FOLDER_PATTERN.match(folder):
        _fail([
            f"Error: Invalid folder name '{folder}'",
            "\nFolder names must match: [a-z0-9_-]",
            "Directory names are normalized automatically, e.g. 'myApp' -> 'my-app'",
        ])


def validate_key_name(key: str) -> None:
    """
    Validate an env key.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not key or not _KEY_PATTERN.match(key):
        _fail([
            f"Error: Invalid key '{key}'",
            "\nKeys must match: [A-Za-z_][A-Za-z0-9_]*",
            "\nExamples of valid keys:",
            "  ✓ DATABASE_URL",
            "  ✓ api_token",
        ])


def validate_environment(environment: str) -> None:
    """
    Validate an environment name (lowercase, no underscores).

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not _ENVIRONMENT_PATTERN.match(environment or ""):
        _fail([
            f"Error: Invalid environment '{environment}'",
            "\nEnvironments must start with a lowercase letter and contain only [a-z0-9-]",
            "Examples: dev, staging, prod",
        ])


def validate_project_id(project_id: str) -> None:
    """
    Validate a GCP project ID.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not _PROJECT_PATTERN.match(project_id or ""):
        _fail([
            f"Error: Invalid GCP project ID '{project_id}'",
            "\nProject IDs are 6-30 characters: lowercase letters, digits and hyphens,",
            "starting with a letter and not ending with a hyphen.",
        ])


def validate_secret_id(folder: str, key: str, environment: str = None) -> None:
    """
    Validate the composed secret ID fits Secret Manager's length limit.

    Raises:
        SystemExit with code 2 if validation fails
    """
    secret_id = make_secret_name(folder, key, environment)
    if len(secret_id) > MAX_SECRET_ID_LENGTH:
        _fail([
            f"Error: Secret ID '{secret_id[:40]}...' is longer than {MAX_SECRET_ID_LENGTH} characters",
        ])
