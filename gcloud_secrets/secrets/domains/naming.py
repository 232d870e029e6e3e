"""Mapping between (folder, environment, key) triples and secret IDs.

Secret IDs in the central project look like ``folder_KEY`` (default
namespace) or ``folder_env_KEY``. Folder and environment are also stored as
labels, and the key as an annotation, so the composite ID never has to be
parsed for secrets written by this tool. ``decode_secret_name`` remains for
secrets created before that metadata existed.
"""
import re
from typing import NamedTuple, Optional

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_INVALID_FOLDER_CHARS = re.compile(r"[^a-z0-9_-]")
_ENVIRONMENT_SEGMENT = re.compile(r"^[a-z]+$")


class DecodedName(NamedTuple):
    key: str
    environment: Optional[str]


def normalize_folder(raw: str) -> str:
    """
    Normalize a directory name into a folder slug.

    ``myApp.v2`` becomes ``my-app-v2``: camelCase boundaries get a hyphen,
    everything is lowercased, and characters outside ``[a-z0-9_-]`` become
    ``-``.
    """
    hyphenated = _CAMEL_BOUNDARY.sub(r"\1-\2", raw)
    return _INVALID_FOLDER_CHARS.sub("-", hyphenated.lower())


def make_secret_name(folder: str, key: str, environment: Optional[str] = None) -> str:
    """Build the secret ID for a key, with the environment segment if any."""
    if environment:
        return f"{folder}_{environment}_{key}"
    return f"{folder}_{key}"


def decode_secret_name(full_id: str, folder: str) -> DecodedName:
    """
    Recover key and environment from a secret ID.

    Args:
        full_id: Secret ID (last segment of the resource name)
        folder: Folder the secret belongs to

    Returns:
        DecodedName(key, environment)

    Note:
        A first segment made only of lowercase letters is taken to be the
        environment. A default-namespace key such as ``dev_MODE`` therefore
        decodes as key ``MODE`` in environment ``dev``.
    """
    prefix = f"{folder}_"
    if not full_id.startswith(prefix):
        return DecodedName(key=full_id, environment=None)

    remainder = full_id[len(prefix):]
    segments = remainder.split("_")
    if len(segments) >= 2 and _ENVIRONMENT_SEGMENT.match(segments[0]):
        return DecodedName(key="_".join(segments[1:]), environment=segments[0])
    return DecodedName(key=remainder, environment=None)


def resolve_key(
    secret_id: str,
    folder: str,
    environment: Optional[str] = None,
    annotated_key: Optional[str] = None,
) -> str:
    """
    Determine the env key a secret stores.

    Priority order:
    1. ``key`` annotation written at upload time
    2. Secret ID minus the ``folder_[environment_]`` prefix given by labels
    3. ``decode_secret_name`` on the secret ID
    """
    if annotated_key:
        return annotated_key

    prefix = make_secret_name(folder, "", environment)
    if folder and secret_id.startswith(prefix) and len(secret_id) > len(prefix):
        return secret_id[len(prefix):]

    return decode_secret_name(secret_id, folder).key
