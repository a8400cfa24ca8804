#!/usr/bin/env python3
"""Main CLI entry point for the Nexus Staging Test Suite.

This provides the `sit` command with subcommands for all test suite operations.

Usage:
    sit provision --maven-version 3.0.4
    sit repos --profile 12a3b4c5
    sit search -g org.example -a demo -v 1.0
    sit clean --list
    sit test --nexus-url http://localhost:8081/nexus
"""

import argparse
import logging
import os
import sys
from pathlib import Path


def add_provision_parser(subparsers):
    """Add the 'provision' subcommand parser."""
    parser = subparsers.add_parser(
        'provision',
        help='Download and unpack Maven versions',
        description='Provision Maven distributions into the toolchain directory',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sit provision
  sit provision --maven-version 3.0.4
  sit provision --maven-version 2.2.1 --maven-version 3.0.4
"""
    )
    parser.add_argument(
        "--maven-version",
        action="append",
        default=[],
        dest="versions",
        metavar="VERSION",
        help="Maven version to provision (can be repeated, default: configured versions)"
    )
    return parser


def add_repos_parser(subparsers):
    """Add the 'repos' subcommand parser."""
    parser = subparsers.add_parser(
        'repos',
        help='List staging repositories',
        description='List staging repositories of all profiles or of one profile',
    )
    parser.add_argument(
        "--profile",
        metavar="ID",
        help="Only list repositories of this staging profile"
    )
    return parser


def add_search_parser(subparsers):
    """Add the 'search' subcommand parser."""
    parser = subparsers.add_parser(
        'search',
        help='Search the Nexus index by GAV',
        description='Search the Nexus index, retrying to ride out indexing lag',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sit search -g org.example -a demo -v 1.0
  sit search -g org.example -a demo -v 1.0 -r example-1001 --attempts 5
"""
    )
    parser.add_argument("-g", "--group-id", required=True, help="groupId")
    parser.add_argument("-a", "--artifact-id", required=True, help="artifactId")
    parser.add_argument("-v", "--artifact-version", required=True, help="version")
    parser.add_argument("-c", "--classifier", help="Classifier filter")
    parser.add_argument("-p", "--packaging", help="Packaging/extension filter")
    parser.add_argument("-r", "--repository-id", help="Repository filter")
    parser.add_argument(
        "--attempts",
        type=int,
        help="Number of searches (default: configured, 3)"
    )
    parser.add_argument(
        "--delay",
        type=float,
        help="Seconds between searches (default: configured, 1.0)"
    )
    return parser


def add_clean_parser(subparsers):
    """Add the 'clean' subcommand parser."""
    parser = subparsers.add_parser(
        'clean',
        help='Clean provisioned toolchains, archives and local caches',
        description='Clean Nexus staging test suite caches',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sit clean --list
  sit clean --all
  sit clean --toolchains
  sit clean --local-cache
  sit clean --all --dry-run
  sit clean --all --force
"""
    )

    parser.add_argument(
        "--list", "-l",
        action="store_true",
        help="List cache contents without deleting"
    )
    parser.add_argument(
        "--all", "-a",
        action="store_true",
        help="Clean all caches"
    )
    parser.add_argument(
        "--toolchains", "-t",
        action="store_true",
        help="Clean unpacked Maven installations"
    )
    parser.add_argument(
        "--archives",
        action="store_true",
        help="Clean downloaded Maven archives"
    )
    parser.add_argument(
        "--local-cache",
        action="store_true",
        help="Clean per-test local Maven repositories"
    )
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Show what would be deleted without actually deleting"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Skip confirmation prompt"
    )

    return parser


def add_config_parser(subparsers):
    """Add the 'config' subcommand parser."""
    parser = subparsers.add_parser(
        'config',
        help='Show configuration',
        description='Show the effective configuration or a sample config file',
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Print a sample configuration file"
    )
    return parser


def add_test_parser(subparsers):
    """Add the 'test' subcommand parser."""
    parser = subparsers.add_parser(
        'test',
        help='Run the test suite',
        description='Run the Nexus staging test suite',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sit test --nexus-url http://localhost:8081/nexus
  sit test --maven-version 3.0.4 -k deploy
  sit test -m "not slow"
"""
    )
    parser.add_argument(
        "--nexus-url",
        help="Base URL of the Nexus under test"
    )
    parser.add_argument(
        "--maven-version",
        action="append",
        default=[],
        dest="versions",
        metavar="VERSION",
        help="Maven version to test with (can be repeated)"
    )
    parser.add_argument(
        "--keep-artifacts",
        action="store_true",
        help="Keep copied test projects and build logs after the run"
    )
    parser.add_argument(
        "-k",
        dest="keyword",
        help="Only run tests matching the given keyword expression"
    )
    parser.add_argument(
        "-m", "--mark",
        dest="marker",
        help="Only run tests matching the given marker"
    )
    parser.add_argument(
        "pytest_args",
        nargs="*",
        help="Additional arguments to pass to pytest"
    )
    return parser


def _toolchain_cache(config):
    from harness.artifacts import ArtifactResolver
    from harness.toolchains import ToolchainCache

    return ToolchainCache(config.toolchain_home_dir, ArtifactResolver(config))


def cmd_provision(args):
    """Execute the provision command."""
    from harness.config import get_config
    from harness.errors import ProvisioningError

    config = get_config()
    versions = args.versions or config.maven_versions
    cache = _toolchain_cache(config)

    try:
        homes = cache.ensure_all(versions)
    except ProvisioningError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for version, home in homes.items():
        print(f"  {version:10} {home}")
    return 0


def cmd_repos(args):
    """Execute the repos command."""
    from harness.config import get_config
    from lib.nexus_client import NexusClient, RemoteQueryError
    from lib.staging import RepositoryStateQuery

    config = get_config()
    with NexusClient.from_config(config) as client:
        query = RepositoryStateQuery(client)
        try:
            if args.profile:
                repositories = query.list_for_profile(args.profile)
            else:
                repositories = query.list_all()
        except RemoteQueryError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if not repositories:
        print("No staging repositories.")
        return 0

    for repo in repositories:
        print(f"  {repo.repository_id:30} {repo.state:10} {repo.profile_name or repo.profile_id}")
    return 0


def cmd_search(args):
    """Execute the search command."""
    from harness.config import get_config
    from lib.nexus_client import NexusClient, RemoteQueryError
    from lib.search import EventualConsistencySearch, RetryPolicy

    config = get_config()
    policy = RetryPolicy(
        attempts=args.attempts or config.search_attempts,
        delay=args.delay if args.delay is not None else config.search_delay,
    )

    with NexusClient.from_config(config) as client:
        search = EventualConsistencySearch(client, policy)
        try:
            response = search.search_by_gav(
                args.group_id,
                args.artifact_id,
                args.artifact_version,
                args.classifier,
                args.packaging,
                args.repository_id,
            )
        except RemoteQueryError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if response is None or not response.found:
        print("Not found.")
        return 1

    for hit in response.hits:
        gav = f"{hit.group_id}:{hit.artifact_id}:{hit.version}"
        if hit.classifier:
            gav += f":{hit.classifier}"
        print(f"  {gav:50} {hit.extension:6} {hit.repository_id}")
    return 0


def cmd_clean(args):
    """Execute the clean command."""
    from harness.clean import (
        cache_dirs,
        list_cache_contents,
        get_cache_info_totals,
        clean_directory,
        format_size,
    )
    from harness.config import get_config

    config = get_config()

    # Default to --list if no action specified
    if not any([args.list, args.all, args.toolchains, args.archives, args.local_cache]):
        args.list = True

    if args.list:
        list_cache_contents(config)
        return 0

    selected = {
        "toolchains": args.all or args.toolchains,
        "archives": args.all or args.archives,
        "local-cache": args.all or args.local_cache,
    }
    targets = {name: path for name, path in cache_dirs(config).items() if selected[name]}

    totals = {name: get_cache_info_totals(path) for name, path in targets.items()}
    total_items = sum(items for items, _ in totals.values())
    total_bytes = sum(size for _, size in totals.values())

    if total_items == 0:
        print("Nothing to clean.")
        return 0

    print("Will delete:")
    for name, (items, size) in totals.items():
        if items > 0:
            print(f"  {name + ':':18}{items} items, {format_size(size)}")
    print(f"  {'Total:':18}{total_items} items, {format_size(total_bytes)}")

    if args.dry_run:
        print("\n(Dry run - nothing deleted)")
        return 0

    # Confirm unless --force
    if not args.force:
        try:
            response = input("\nProceed? [y/N] ")
            if response.lower() not in ['y', 'yes']:
                print("Cancelled.")
                return 0
        except (EOFError, KeyboardInterrupt):
            print("\nCancelled.")
            return 0

    for name, path in targets.items():
        items, bytes_freed = clean_directory(path)
        if items > 0:
            print(f"Cleaned {name}: {items} items, {format_size(bytes_freed)}")

    print("Done.")
    return 0


def cmd_config(args):
    """Execute the config command."""
    from harness.config import get_config, generate_sample_config

    if args.sample:
        print(generate_sample_config())
        return 0

    config = get_config()
    print("Effective configuration")
    print("=" * 40)
    print(f"Base dir:          {config.base_dir}")
    print(f"Toolchain dir:     {config.toolchain_home_dir}")
    print(f"Archive cache:     {config.archive_cache_dir}")
    print(f"Local repository:  {config.local_repository}")
    print(f"Maven versions:    {', '.join(config.maven_versions)}")
    print(f"Remote repository: {config.remote_repository_url}")
    print(f"Nexus URL:         {config.nexus_url}")
    print(f"Nexus user:        {config.nexus_username}")
    print(f"Search policy:     {config.search_attempts} x {config.search_delay}s")
    return 0


def cmd_test(args):
    """Execute the test command."""
    import subprocess

    pytest_cmd = [sys.executable, "-m", "pytest"]

    if args.nexus_url:
        pytest_cmd.append(f"--nexus-url={args.nexus_url}")

    for version in args.versions:
        pytest_cmd.append(f"--maven-version={version}")

    if args.keep_artifacts:
        pytest_cmd.append("--keep-artifacts")

    if args.keyword:
        pytest_cmd.extend(["-k", args.keyword])

    if args.marker:
        pytest_cmd.extend(["-m", args.marker])

    if args.pytest_args:
        pytest_cmd.extend(args.pytest_args)

    print(f"\nRunning: {' '.join(str(x) for x in pytest_cmd)}\n")
    result = subprocess.run(pytest_cmd)
    return result.returncode


def build_parser():
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog='sit',
        description='Nexus Staging Test Suite - provision Maven, query staging state, run tests',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  provision  Download and unpack Maven versions
  repos      List staging repositories
  search     Search the Nexus index by GAV
  clean      Clean toolchains, archives and local caches
  config     Show configuration
  test       Run the test suite

For help on a specific command:
  sit <command> --help

Environment Variables:
  STAGING_NEXUS_URL        Nexus base URL
  STAGING_MAVEN_VERSIONS   Comma-separated Maven versions
  STAGING_BASE_DIR         Base directory of the test run
"""
    )

    parser.add_argument(
        '--version', '-V',
        action='version',
        version='%(prog)s 0.1.0'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log harness activity to stderr'
    )
    parser.add_argument(
        '--base-dir', '-C',
        type=Path,
        metavar='DIR',
        help='Base directory of the test run (default: current directory)'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    add_provision_parser(subparsers)
    add_repos_parser(subparsers)
    add_search_parser(subparsers)
    add_clean_parser(subparsers)
    add_config_parser(subparsers)
    add_test_parser(subparsers)

    return parser


def main(argv=None):
    """Main entry point for the sit command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Apply global --base-dir option to config
    if args.base_dir:
        from harness.config import reset_config
        os.environ['STAGING_BASE_DIR'] = str(args.base_dir.resolve())
        reset_config()

    handlers = {
        'provision': cmd_provision,
        'repos': cmd_repos,
        'search': cmd_search,
        'clean': cmd_clean,
        'config': cmd_config,
        'test': cmd_test,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
