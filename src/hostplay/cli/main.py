"""
Main CLI entrypoint for hostplay.

Usage:
    hostplay --version
    hostplay -c hosts.yml playbook.yml
    hostplay -s ./hosts.sh -t files,diagnostics playbook.yml
"""

import argparse
import platform
import sys
from typing import List, Optional

from hostplay import __version__
from hostplay.engine.errors import ExitCode, InventoryError
from hostplay.logging import configure_logging, get_level_from_verbosity


def get_version_string() -> str:
    """Generate a detailed version string."""
    python_version = platform.python_version()
    os_info = f"{platform.system()} {platform.release()}"
    return (
        f"hostplay {__version__}\n"
        f"  python: {python_version}\n"
        f"  platform: {os_info}"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for hostplay."""
    parser = argparse.ArgumentParser(
        prog="hostplay",
        description="Run a playbook of shell, copy, search/replace and template tasks over SSH",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hostplay -c hosts.yml site.yml
  hostplay -c hosts.yml -t files site.yml -v
  hostplay -s ./inventory.sh --timeout 60 --json deploy.yml
  hostplay -c hosts.yml --log-file run.log -vv site.yml
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=get_version_string(),
    )

    parser.add_argument(
        "playbook",
        help="Playbook file to run",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-c", "--host-config",
        dest="host_config",
        default=None,
        help="Host config YAML file",
    )
    source.add_argument(
        "-s", "--host-script",
        dest="host_script",
        default=None,
        help="Executable that prints the host config YAML on stdout",
    )

    parser.add_argument(
        "-t", "--tags",
        dest="tags",
        action="append",
        default=[],
        help="Only run tasks tagged with these values (comma separated, can be repeated)",
    )

    parser.add_argument(
        "-f", "--forks",
        dest="forks",
        type=int,
        default=None,
        help="Maximum number of hosts run at once (default: all)",
    )

    parser.add_argument(
        "--timeout",
        dest="timeout",
        type=float,
        default=None,
        help="Per-command timeout in seconds (overrides global_config.command_timeout)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in JSON format",
    )

    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write log records to this file",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv, -vvv)",
    )

    return parser


def parse_tags(values: List[str]) -> List[str]:
    """Split repeated, comma separated ``-t`` values into tag names."""
    tags: List[str] = []
    for value in values:
        for tag in value.split(','):
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def main(args: Optional[List[str]] = None) -> int:
    """Main entrypoint for hostplay CLI."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    configure_logging(
        level=get_level_from_verbosity(parsed.verbose),
        log_file=parsed.log_file,
    )

    if parsed.forks is not None and parsed.forks < 1:
        print("ERROR: --forks must be at least 1", file=sys.stderr)
        return int(ExitCode.GENERIC_ERROR)
    if parsed.timeout is not None and parsed.timeout <= 0:
        print("ERROR: --timeout must be positive", file=sys.stderr)
        return int(ExitCode.GENERIC_ERROR)

    from hostplay.engine.inventory import load_host_config, load_host_config_from_script
    from hostplay.engine.runner import PlaybookRunner

    try:
        if parsed.host_script:
            inventory = load_host_config_from_script(parsed.host_script)
        else:
            inventory = load_host_config(parsed.host_config)
    except InventoryError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return int(ExitCode.PARSE_ERROR)

    runner = PlaybookRunner(
        inventory=inventory,
        playbook_path=parsed.playbook,
        tags=parse_tags(parsed.tags),
        forks=parsed.forks,
        command_timeout=parsed.timeout,
        verbosity=parsed.verbose,
        json_output=parsed.json,
    )

    return runner.run()


if __name__ == "__main__":
    sys.exit(main())
