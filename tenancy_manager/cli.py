"""
Command Line Interface

Entry point of the ``tenancy-manager`` command: runs the control loops and
exposes the configuration template and the namespace naming scheme.
"""

import argparse
import logging
import sys
from typing import Optional

from .core import ConfigManager, ManagerConfig, TenancyError, setup_logging, validate_name
from .manager import create_operator
from .namespaces import decode_project_namespace, project_namespace_name

logger = logging.getLogger(__name__)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per operation"""

    # Common parser: arguments shared by ALL commands
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument('--debug', action='store_true', default=None, help='Enable debug logging')

    parser = argparse.ArgumentParser(
        prog='tenancy-manager',
        description='Tenancy Manager - Organization and Project multi-tenancy control plane',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tenancy-manager run --config tenancy-manager.yaml
  tenancy-manager run --peering tenancy-manager --workers 2 --debug
  tenancy-manager generate-config --output ./config
  tenancy-manager namespace-name acme web
  tenancy-manager decode-namespace acme-tenancy-web
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser(
        'run',
        parents=[common_parser],
        help='Run the controllers',
        description='Run every tenancy controller until interrupted'
    )
    run_parser.add_argument('--config', help='Configuration file path')
    run_parser.add_argument('--workers', type=int, help='Handler threads per controller')
    run_parser.add_argument('--peering', help='KopfPeering object used for leader election')

    config_parser = subparsers.add_parser(
        'generate-config',
        parents=[common_parser],
        help='Generate a configuration template',
        description='Write a commented configuration template'
    )
    config_parser.add_argument('--output', help='Output directory for the template')

    name_parser = subparsers.add_parser(
        'namespace-name',
        parents=[common_parser],
        help='Print the namespace of an Organization or Project',
        description='Print the namespace owned by an Organization, or by one of its Projects'
    )
    name_parser.add_argument('organization', help='Organization namespace')
    name_parser.add_argument('project', nargs='?', help='Project name')

    decode_parser = subparsers.add_parser(
        'decode-namespace',
        parents=[common_parser],
        help='Split a project namespace into Organization and Project',
        description='Decode a project namespace name'
    )
    decode_parser.add_argument('name', help='Namespace name')

    return parser


def load_settings(args) -> ManagerConfig:
    """Merge the configuration file (explicit or discovered) with CLI flags"""
    config_manager = ConfigManager()
    config_path: Optional[str] = args.config or config_manager.find_config()
    if config_path:
        config_manager.load_config(config_path)

    return config_manager.build_manager_config({
        'workers': args.workers,
        'peering': args.peering,
        'debug': args.debug,
    })


def handle_run_command(args) -> int:
    settings = load_settings(args)
    setup_logging(settings.debug)

    # kopf installs its own SIGINT/SIGTERM handlers and returns once stopped
    operator = create_operator(settings)
    operator.run()
    return 0


def handle_generate_config_command(args) -> int:
    path = ConfigManager().generate_config_template(args.output)
    print(f"Configuration template written to {path}")
    return 0


def handle_namespace_name_command(args) -> int:
    validate_name(args.organization)
    if args.project is None:
        print(args.organization)
        return 0
    validate_name(args.project)
    print(project_namespace_name(args.organization, args.project))
    return 0


def handle_decode_namespace_command(args) -> int:
    try:
        organization_namespace, project_name = decode_project_namespace(args.name)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"organization namespace: {organization_namespace}")
    print(f"project: {project_name}")
    return 0


# Command dispatcher mapping
COMMAND_HANDLERS = {
    'run': handle_run_command,
    'generate-config': handle_generate_config_command,
    'namespace-name': handle_namespace_name_command,
    'decode-namespace': handle_decode_namespace_command,
}


def main(argv=None) -> int:
    """
    Main entry point

    Returns:
        Exit code (0 for success, 1 on error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command != 'run':
        setup_logging(bool(args.debug))

    try:
        return COMMAND_HANDLERS[args.command](args)
    except TenancyError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
