"""CLI entrypoint for agent-gcpcredentials."""
import sys
import json
import shutil
import argparse
import logging
from pathlib import Path

from .validators import validate_credential_id

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr
    )


def cmd_version(args):
    """Show version information."""
    print(f"agent-gcpcredentials {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from agent_gcpcredentials.credentials.domains.preferences import CONFIG_PATH_KEY, set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference(CONFIG_PATH_KEY, str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and its source."""
    from agent_gcpcredentials.credentials.domains.config_loader import default_config_path
    from agent_gcpcredentials.credentials.domains.preferences import CONFIG_PATH_KEY, get_preference

    config_path_pref = get_preference(CONFIG_PATH_KEY)

    if config_path_pref:
        config_path = Path(config_path_pref)
        suffix = "" if config_path.exists() else " (file not found)"
        print(f"Config path: {config_path}{suffix}")
        print("Source: preference")
        return

    default_config = default_config_path()
    suffix = "" if default_config.exists() else " (file not found)"
    print(f"Config path: {default_config}")
    print(f"Source: default{suffix}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from agent_gcpcredentials.credentials.domains.config_loader import default_config_path
    from agent_gcpcredentials.credentials.domains.preferences import CONFIG_PATH_KEY, clear_preference

    clear_preference(CONFIG_PATH_KEY)
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    from agent_gcpcredentials.credentials.domains.config_loader import default_config_path
    from agent_gcpcredentials.credentials.domains.preferences import CONFIG_PATH_KEY, set_preference

    default_config = default_config_path()

    print("=== agent-gcpcredentials Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Configuration file already exists at: {default_config}")
        response = input("Do you want to use a different config file? (y/N): ").strip().lower()
        if response != 'y':
            print(f"\nUsing existing config at: {default_config}")
            return

    print("Choose an option:")
    print("1. Copy an existing config file to default location")
    print("2. Point to an existing config file at a different location")
    print("3. Cancel (manually create config file later)")

    choice = input("\nEnter choice (1-3): ").strip()

    if choice in ("1", "2"):
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.is_file():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)

        if choice == "1":
            default_config.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, default_config)
            print(f"\nConfig copied to: {default_config}")
        else:
            set_preference(CONFIG_PATH_KEY, str(source))
            print(f"\nConfig path set to: {source}")
    elif choice == "3":
        print("\nSetup cancelled.")
        print(f"Create your config file at: {default_config}")
        print("Or use: gcpcreds config set-path <path>")
    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def _supply():
    from agent_gcpcredentials.credentials.domains.interface import SecretsBackendError
    from agent_gcpcredentials.credentials.workflows.credentials_supplier import supply

    try:
        return supply()
    except SecretsBackendError as e:
        print(f"Error: Could not read credentials from GCP Secret Manager: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_credentials_list(args):
    """List credentials from the primary project and all configured roles."""
    credentials = sorted(_supply(), key=lambda c: c.id)

    if args.json:
        rows = [
            {"id": c.id, "type": c.type_name, "description": c.description}
            for c in credentials
        ]
        print(json.dumps(rows, indent=2))
        return

    if not credentials:
        print("No credentials found.")
        return

    for c in credentials:
        line = f"{c.id}\t{c.type_name}"
        if c.description:
            line += f"\t{c.description}"
        print(line)


def cmd_credentials_get(args):
    """Print the secret value of one credential."""
    from agent_gcpcredentials.credentials.domains.credential_types import CertificateCredential, FileCredential
    from agent_gcpcredentials.credentials.domains.interface import SecretsBackendError

    validate_credential_id(args.credential_id)

    matches = [c for c in _supply() if c.id == args.credential_id]
    if not matches:
        print(f"Error: Credential '{args.credential_id}' not found", file=sys.stderr)
        sys.exit(1)
    credential = matches[0]

    try:
        if isinstance(credential, (FileCredential, CertificateCredential)):
            sys.stdout.buffer.write(credential.secret.get_bytes())
            sys.stdout.flush()
            return
        value = credential.secret_value
    except SecretsBackendError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        print(value)
    else:
        print(f"Credential '{credential.id}' ({credential.type_name}): {value}")


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, credential not found, etc.)
        2 - Usage errors (invalid arguments, invalid credential id, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="gcpcreds",
        description="agent-gcpcredentials CLI - typed credentials from GCP Secret Manager across projects",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, credential not found, etc.)
  2 - Usage error (invalid arguments, invalid credential id, etc.)

Environment variables:
  GCP_PROJECT - GCP project ID (overrides config file)

Configuration:
  Default location: ~/.config/agent-gcpcredentials/config.yml
  Custom path: Set with 'gcpcreds config set-path <path>'
  View current: Run 'gcpcreds config show'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of agent-gcpcredentials"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage agent-gcpcredentials configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/agent-gcpcredentials/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_subparsers.add_parser("init", help="Interactive config setup")

    # credentials command
    credentials_parser = subparsers.add_parser(
        "credentials",
        help="Credential operations",
        description="Read credentials from the primary project and every configured role"
    )
    credentials_subparsers = credentials_parser.add_subparsers(dest="credentials_command")

    list_parser = credentials_subparsers.add_parser(
        "list",
        help="List credentials",
        description="""
List credentials from all configured projects in parallel.

Primary project credentials are listed by secret name. Credentials read
through a role are listed by full resource name.
        """
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    get_parser = credentials_subparsers.add_parser(
        "get",
        help="Print a credential's secret value",
        description="""
Print the secret value of a credential.

File and certificate credentials are written to stdout as raw bytes.

Exit codes:
  0 - Credential found and printed
  1 - Credential not found or backend error
  2 - Invalid credential id
        """
    )
    get_parser.add_argument("credential_id", help="Credential id (secret name or resource name)")
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the secret value"
    )

    args = parser.parse_args()
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handlers = {
                "set-path": cmd_config_set_path,
                "show": cmd_config_show,
                "clear": cmd_config_clear,
                "init": cmd_config_init,
            }
            handler = handlers.get(args.config_command)
            if handler is None:
                config_parser.print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "credentials":
            if args.credentials_command == "list":
                cmd_credentials_list(args)
            elif args.credentials_command == "get":
                cmd_credentials_get(args)
            else:
                credentials_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
