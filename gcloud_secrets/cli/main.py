"""CLI entrypoint for gcloud-secrets."""
import sys
import json
import argparse
import logging
from pathlib import Path

import yaml

from .validators import (
    validate_environment,
    validate_folder_name,
    validate_key_name,
    validate_project_id,
    validate_secret_id,
)

VERSION = "0.1.0"

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "OK": "[OK]  ",
    "DIFF": "[DIFF]",
    "NEW": "[NEW] ",
}
STATUS_SUFFIXES = {
    "DIFF": " - differs",
    "NEW": " - not registered",
}


def _load_config(args):
    from gcloud_secrets.secrets.domains.config_loader import load_config

    return load_config(getattr(args, "config", None))


def _get_store(config):
    """Build the Secret Manager client for the configured central project."""
    from gcloud_secrets.secrets.domains.config_loader import require_project
    from gcloud_secrets.secrets.domains.gcp_client import GCPSecretClient

    return GCPSecretClient(require_project(config))


def _resolve_environment(args, config):
    """--env wins (an empty value selects the default namespace); else the configured default."""
    if getattr(args, "env", None) is not None:
        environment = args.env or None
    else:
        environment = config.default_environment
    if environment:
        validate_environment(environment)
    return environment


def _resolve_folder(raw):
    from gcloud_secrets.secrets.domains.naming import normalize_folder

    folder = normalize_folder(raw or Path.cwd().name)
    validate_folder_name(folder)
    return folder


def format_scan_report(report) -> str:
    """Render a ScanReport as human-readable text."""
    lines = ["=== Secret Manager sync status ===", ""]
    if not report.results:
        lines.append("No .env / .dev.vars files found")
        return "\n".join(lines)

    for result in report.results:
        label = STATUS_LABELS[result.status.value]
        suffix = STATUS_SUFFIXES.get(result.status.value, "")
        warn = " (not gitignored)" if not result.is_ignored_by_vcs else ""
        lines.append(
            f"{label} {result.repository}/ {result.file} [{result.environment}] "
            f"({result.local_key_count} keys){suffix}{warn}"
        )

    lines.extend([
        "",
        "---",
        f"Total: {len(report.results)} files",
        f"  Synced: {report.ok_count}",
        f"  Differs: {report.diff_count}",
        f"  Not registered: {report.new_count}",
    ])
    not_ignored = report.not_ignored
    if not_ignored:
        lines.append(f"\nWarning: {len(not_ignored)} env files are not covered by .gitignore")
    if report.warnings:
        lines.append(f"\nSkipped {len(report.warnings)} unreadable paths (use --verbose for details)")
    return "\n".join(lines)


def cmd_version(args):
    """Show version information."""
    print(f"gcloud-secrets {VERSION}")


def cmd_init(args):
    """Set the central project."""
    from gcloud_secrets.secrets.workflows.secret_operations import init_config

    validate_project_id(args.project_id)
    if args.env:
        validate_environment(args.env)

    config_path = init_config(
        args.project_id,
        default_environment=args.env,
        enable_api=args.enable_api,
        config_path=getattr(args, "config", None),
    )
    print(f"Configured central project: {args.project_id}")
    if args.env:
        print(f"Default environment: {args.env}")
    print(f"Config file: {config_path}")


def cmd_config_show(args):
    """Show current configuration and where it comes from."""
    from gcloud_secrets.secrets.domains.config_loader import get_config_path

    config_path = get_config_path(getattr(args, "config", None))
    config = _load_config(args)

    if config_path.exists():
        print(f"Config path: {config_path}")
    else:
        print(f"Config path: {config_path} (file not found)")
    print(f"Central project: {config.central_project or '(not set)'}")
    print(f"Default environment: {config.default_environment or '(none)'}")


def cmd_list(args):
    """List folders, or the keys of one folder."""
    from gcloud_secrets.secrets.workflows.secret_operations import list_folders, list_keys

    config = _load_config(args)
    store = _get_store(config)

    if not args.folder:
        folders = list_folders(store)
        print("Folders:")
        for folder, environments in folders.items():
            envs = f" ({', '.join(environments)})" if environments else ""
            print(f"  {folder}/{envs}")
        return

    folder = _resolve_folder(args.folder)
    environment = _resolve_environment(args, config)
    keys = list_keys(store, folder, environment)
    print(f"Secrets in {folder} [{environment or 'default'}]:")
    for key in keys:
        print(f"  {key}")


def cmd_pull(args):
    """Print (or write) a folder's secrets in env file format."""
    from gcloud_secrets.secrets.workflows.secret_operations import pull_env

    config = _load_config(args)
    store = _get_store(config)
    folder = _resolve_folder(args.folder)
    environment = _resolve_environment(args, config)

    content = pull_env(store, folder, environment)
    if not content:
        print(f"Error: No secrets found in {folder} [{environment or 'default'}]", file=sys.stderr)
        sys.exit(1)

    if args.output:
        Path(args.output).write_text(content + "\n", encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        print(content)


def cmd_push(args):
    """Upload an env file to a folder."""
    from gcloud_secrets.secrets.domains.env_parser import parse_env_file
    from gcloud_secrets.secrets.workflows.secret_operations import push_env

    config = _load_config(args)
    folder = _resolve_folder(args.folder)
    environment = _resolve_environment(args, config)

    env_file = Path(args.file)
    if not env_file.is_file():
        print(f"Error: File not found: {env_file}", file=sys.stderr)
        sys.exit(1)

    content = env_file.read_text(encoding="utf-8")
    for entry in parse_env_file(content):
        validate_secret_id(folder, entry.key, environment)

    store = _get_store(config)
    result = push_env(store, folder, content, environment)
    print(f"Uploaded {result.count} secrets to {folder} [{environment or 'default'}]")
    for key in result.created:
        print(f"  created: {key}")
    for key in result.updated:
        print(f"  updated: {key}")
    for key in result.skipped:
        print(f"  skipped (empty value): {key}")


def cmd_delete(args):
    """Delete a key, or a whole folder."""
    from gcloud_secrets.secrets.workflows.secret_operations import delete_secrets

    config = _load_config(args)
    validate_folder_name(args.folder)
    if args.key:
        validate_key_name(args.key)
    environment = _resolve_environment(args, config)

    store = _get_store(config)
    deleted = delete_secrets(store, args.folder, key=args.key, environment=environment)
    if not deleted:
        target = f"{args.folder}/{args.key}" if args.key else f"{args.folder}/"
        print(f"Error: Nothing to delete at {target} [{environment or 'default'}]", file=sys.stderr)
        sys.exit(1)

    if args.key:
        print(f"Deleted: {args.folder}/{args.key}")
    else:
        print(f"Deleted: {args.folder}/ ({len(deleted)} secrets)")


def cmd_scan(args):
    """Scan git repositories for env files and compare them with the central project."""
    from gcloud_secrets.secrets.workflows.scan import scan

    config = _load_config(args)
    if args.env:
        validate_environment(args.env)
    store = _get_store(config)

    base_path = args.base_path or str(Path.home())
    report = scan(base_path, store, environment=args.env, max_depth=args.max_depth)

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    elif args.format == "yaml":
        print(yaml.safe_dump(report.to_dict(), sort_keys=False), end="")
    else:
        print(format_scan_report(report))


def build_parser():
    parser = argparse.ArgumentParser(
        prog="gcloud-secrets",
        description="Sync local .env files with a central GCP Secret Manager project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, etc.)
  2 - Usage error (invalid arguments, invalid folder or key, etc.)

Environment variables:
  SECRETS_CENTRAL_PROJECT - Central project ID (when no config file exists)
  DEFAULT_ENVIRONMENT     - Default environment (when no config file exists)
  SECRETS_MANAGER_CONFIG  - Alternative config file path

Configuration:
  Default location: ~/.secrets-manager.conf (written by 'gcloud-secrets init')
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Config file path (default: ~/.secrets-manager.conf)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of gcloud-secrets"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Set the central project",
        description="Write the central project (and optional default environment) to the config file"
    )
    init_parser.add_argument("project_id", help="GCP project that holds all secrets")
    init_parser.add_argument("--env", help="Default environment for list/pull/push/delete")
    init_parser.add_argument(
        "--enable-api",
        action="store_true",
        help="Enable the Secret Manager API in the project with gcloud"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Inspect gcloud-secrets configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current configuration",
        description="Display the config file path, central project and default environment"
    )

    env_help = "Environment (default: DEFAULT_ENVIRONMENT; pass --env '' for the default namespace)"

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List folders or keys",
        description="Without a folder, list every folder and its environments. With a folder, list its keys."
    )
    list_parser.add_argument("folder", nargs="?", help="Folder name")
    list_parser.add_argument("--env", help=env_help)

    # pull command
    pull_parser = subparsers.add_parser(
        "pull",
        help="Fetch secrets as .env content",
        description="Print a folder's secrets in KEY=value format (multi-line values in backticks)"
    )
    pull_parser.add_argument("folder", nargs="?", help="Folder name (default: current directory name)")
    pull_parser.add_argument("--env", help=env_help)
    pull_parser.add_argument("-o", "--output", help="Write to this file instead of stdout")

    # push command
    push_parser = subparsers.add_parser(
        "push",
        help="Upload an env file",
        description="Create or update one secret per key of an env file"
    )
    push_parser.add_argument("folder", nargs="?", help="Folder name (default: current directory name)")
    push_parser.add_argument("file", nargs="?", default=".env", help="Env file (default: .env)")
    push_parser.add_argument("--env", help=env_help)

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete secrets",
        description="Delete one key, or every key of a folder when no key is given"
    )
    delete_parser.add_argument("folder", help="Folder name")
    delete_parser.add_argument("key", nargs="?", help="Key to delete (default: whole folder)")
    delete_parser.add_argument("--env", help=env_help)

    # scan command
    scan_parser = subparsers.add_parser(
        "scan",
        help="Check .env sync status of git repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Find git repositories below a directory and compare their env files
(.env, .dev.vars, .env.local, .env.production) with the central project.

Status:
  OK   - every key matches
  DIFF - keys or values differ
  NEW  - nothing registered for the folder/environment

Without --env, the default namespace and every environment found remotely
for each folder are checked. The scan never modifies anything.
        """
    )
    scan_parser.add_argument("base_path", nargs="?", help="Directory to scan (default: home directory)")
    scan_parser.add_argument("--env", help="Only check this environment")
    scan_parser.add_argument("--max-depth", type=int, default=5, help="Directory depth limit (default: 5)")
    scan_parser.add_argument(
        "--format",
        choices=["text", "json", "yaml"],
        default="text",
        help="Report format (default: text)"
    )

    return parser, config_parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (configuration, authentication, network, etc.)
        2 - Usage errors (invalid arguments, invalid names, etc.)
    """
    from gcloud_secrets.secrets.domains.config_loader import ConfigError

    parser, config_parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        "version": cmd_version,
        "init": cmd_init,
        "list": cmd_list,
        "pull": cmd_pull,
        "push": cmd_push,
        "delete": cmd_delete,
        "scan": cmd_scan,
    }

    # Route to command handlers
    try:
        if args.command == "config":
            if args.config_command == "show":
                cmd_config_show(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        else:
            handlers[args.command](args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
