"""Main entry point for Crate Digger."""

import argparse
import logging
from pathlib import Path

import yaml
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .analyzers.crate_analyzer import CrateAnalyzer
from .analyzers.repo_analyzer import RepoAnalyzer
from .common import DiggerError, WorkspaceError
from .crawler.crate_downloader import DEFAULT_REGISTRY, CrateDownloader
from .crawler.dump_fetcher import DEFAULT_DUMP_URL, fetch_and_extract
from .crawler.http import create_client
from .crawler.repo_manager import RepoManager
from .query.filters import DEFAULT_BORING_HOMEPAGES
from .store.dump_reader import read_crates, read_versions
from .store.knowledge_base import KnowledgeBase
from .store.output import DEFAULT_REPO_TYPES, DEFAULT_TEMPLATES, DEFAULT_URL, PAGE_SIZE, SiteGenerator
from .workspace import Workspace

logger = logging.getLogger(__name__)
console = Console()

DEFAULT_WORKSPACE = "./workspace"
DEFAULT_GIT_TIMEOUT = 300


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        console.print(f"[red]Error:[/red] Config file not found: {config_path}")
        console.print("Copy config/config.yaml and adjust the workspace root.")
        raise SystemExit(1)

    try:
        config = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise WorkspaceError(f"Could not parse {config_path}: {e}") from e
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise WorkspaceError(f"{config_path} must contain a mapping")
    return config


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def get_workspace(config: dict) -> Workspace:
    root = config.get("workspace", {}).get("root", DEFAULT_WORKSPACE)
    return Workspace(Path(root).expanduser())


def run_fetch_dump(config: dict) -> None:
    """Download and unpack the registry dump."""
    workspace = get_workspace(config)
    workspace.create_folders()
    url = config.get("registry", {}).get("dump_url", DEFAULT_DUMP_URL)
    with create_client(config) as client:
        target = fetch_and_extract(workspace, client, url)
    console.print(f"[green]✓[/green] Dump extracted to {target}")


def run_download_crates(config: dict, limit: int = 0) -> None:
    """Download the newest release of every package."""
    workspace = get_workspace(config)
    workspace.create_folders()
    crates = read_crates(workspace)
    versions = read_versions(workspace)

    registry = config.get("registry", {}).get("base_url", DEFAULT_REGISTRY)
    with create_client(config) as client:
        downloader = CrateDownloader(workspace, client, registry_base=registry)
        stats = downloader.download_crates(crates, versions, limit=limit)
        stats.removed = downloader.remove_old_versions(crates, versions)

    console.print(
        f"\n[bold]Downloaded {stats.downloaded} crates[/bold] "
        f"({stats.skipped} already present, {stats.failed} failed, "
        f"{stats.removed} old versions removed)"
    )


def run_clone(
    config: dict,
    limit: int = 0,
    recent: int = 0,
    force: bool = False,
    clone_only: bool = False,
) -> None:
    """Clone or update the source repositories."""
    workspace = get_workspace(config)
    workspace.create_folders()
    crates = read_crates(workspace)

    timeout = int(config.get("git", {}).get("timeout", DEFAULT_GIT_TIMEOUT))
    with create_client(config) as client:
        manager = RepoManager(workspace, client, timeout=timeout)
        stats = manager.update_repositories(
            crates, limit=limit, recent=recent, force=force, clone_only=clone_only
        )

    reused = {url: count for url, count in stats.repo_reuse.items() if count > 1}
    for url, count in sorted(reused.items(), key=lambda item: item[1], reverse=True)[:10]:
        logger.info("Repository %s is used by %d crates", url, count)


def run_analyze_crates(config: dict, limit: int = 0) -> None:
    """Analyze the unpacked packages."""
    CrateAnalyzer(get_workspace(config)).analyze_all(limit=limit)


def run_analyze_repos(config: dict, limit: int = 0) -> None:
    """Collect details from the cloned repositories."""
    workspace = get_workspace(config)
    workspace.create_folders()
    timeout = int(config.get("git", {}).get("timeout", DEFAULT_GIT_TIMEOUT))
    RepoAnalyzer(workspace, timeout=timeout).analyze_all(limit=limit)


def run_build_site(config: dict, limit: int = 0) -> None:
    """Join everything and render the site."""
    workspace = get_workspace(config)
    site_config = config.get("site", {})

    kb = KnowledgeBase(workspace, limit=limit).load()

    generator = SiteGenerator(
        kb=kb,
        site_dir=workspace.site,
        templates_dir=site_config.get("templates", DEFAULT_TEMPLATES),
        repo_types_path=site_config.get("repo_types", DEFAULT_REPO_TYPES),
        site_url=site_config.get("url", DEFAULT_URL),
        page_size=int(site_config.get("page_size", PAGE_SIZE)),
        boring_homepages=tuple(site_config.get("boring_homepages", DEFAULT_BORING_HOMEPAGES)),
    )
    generator.generate_all()

    summary = kb.get_summary()
    console.print("\n[bold]Site Complete[/bold]")
    console.print(f"  Crates: {summary['crates']}")
    console.print(f"  Owners: {summary['owners']}")
    console.print(f"  Parsed Cargo.toml: {summary['manifests']}")
    console.print(f"  Cargo.toml errors: {summary['errors']} (+{summary['nameless_errors']} nameless)")
    console.print(f"  Missing Cargo.toml: {summary['missing']}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crate Digger - collect and report on the crates of the Rust registry"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", "-c",
        default="config/config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug messages",
    )

    limit = argparse.ArgumentParser(add_help=False)
    limit.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Limit the number of items we process (0 = no limit)",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("fetch-dump", help="Download and unpack the registry dump")
    commands.add_parser(
        "download-crates", parents=[limit], help="Download the newest release of each crate"
    )

    clone = commands.add_parser(
        "clone-repos", parents=[limit], help="Clone or update the repositories of the crates"
    )
    clone.add_argument(
        "--recent",
        type=int,
        default=0,
        help="Only process crates updated in the last N days",
    )
    clone.add_argument(
        "--clone",
        action="store_true",
        help="Only clone new repositories, don't update existing clones",
    )
    clone.add_argument(
        "--force",
        action="store_true",
        help="Try to clone even if cloning failed before",
    )

    commands.add_parser("analyze-crates", parents=[limit], help="Analyze the downloaded crates")
    commands.add_parser("analyze-repos", parents=[limit], help="Analyze the cloned repositories")
    commands.add_parser("build-site", parents=[limit], help="Generate the static site")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(Path(args.config))
    except WorkspaceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1) from e

    logger.info("Starting Crate Digger %s: %s", __version__, args.command)
    try:
        if args.command == "fetch-dump":
            run_fetch_dump(config)
        elif args.command == "download-crates":
            run_download_crates(config, limit=args.limit)
        elif args.command == "clone-repos":
            run_clone(
                config,
                limit=args.limit,
                recent=args.recent,
                force=args.force,
                clone_only=args.clone,
            )
        elif args.command == "analyze-crates":
            run_analyze_crates(config, limit=args.limit)
        elif args.command == "analyze-repos":
            run_analyze_repos(config, limit=args.limit)
        elif args.command == "build-site":
            run_build_site(config, limit=args.limit)
    except DiggerError as e:
        logger.error("%s failed: %s", args.command, e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    main()
