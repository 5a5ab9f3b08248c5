"""Collect CI and formatter markers from the cloned repositories."""

import logging
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..common import elapsed_timer
from ..crawler.repo_manager import run_git
from ..details import VcsDetails
from ..store.vcs_details import details_path_for, read_details_file, write_details_file
from ..workspace import Workspace

logger = logging.getLogger(__name__)
console = Console()

# Single-file CI markers, checked on every host.
CI_FILES = {
    "has_cirrus_ci": (".cirrus.yml",),
    "has_travis_ci": (".travis.yml",),
    "has_jenkins": ("Jenkinsfile",),
    "has_appveyor": ("appveyor.yml", ".appveyor.yml"),
    "has_azure_pipeline": ("azure-pipelines.yml", ".azure-pipelines.yml"),
    "has_bitbucket_pipeline": ("bitbucket-pipelines.yml",),
}


@dataclass
class Clone:
    host: str
    owner: str
    repo: str
    path: Path


def find_clones(repos_root: Path) -> list[Clone]:
    """Every ``<host>/<owner>/<repo>`` directory below ``repos_root``, sorted."""
    clones: list[Clone] = []
    if not repos_root.exists():
        return clones
    for host in sorted(p for p in repos_root.iterdir() if p.is_dir()):
        for owner in sorted(p for p in host.iterdir() if p.is_dir()):
            for repo in sorted(p for p in owner.iterdir() if p.is_dir()):
                clones.append(Clone(host.name, owner.name, repo.name, repo))
    return clones


def has_github_workflows(path: Path) -> bool:
    workflows = path / ".github" / "workflows"
    return workflows.is_dir() and any(workflows.iterdir())


def commit_count(path: Path, timeout: int = 300) -> int:
    result = run_git(["rev-list", "--count", "HEAD"], cwd=path, timeout=timeout)
    if not result.success:
        logger.warning("Could not count commits in %s: %s", path, result.error)
        return 0
    try:
        return int(result.output)
    except ValueError:
        logger.warning("Unexpected commit count '%s' in %s", result.output, path)
        return 0


def collect_details(clone: Clone, previous: VcsDetails, timeout: int = 300) -> VcsDetails:
    """Fresh markers for one clone; the memoised fields of ``previous`` survive."""
    path = clone.path
    details = VcsDetails(
        git_clone_error=previous.git_clone_error,
        cargo_fmt=previous.cargo_fmt,
    )

    if clone.host == "github":
        details.has_github_action = has_github_workflows(path)
    if clone.host == "gitlab":
        details.has_gitlab_pipeline = (path / ".gitlab-ci.yml").exists()
    details.has_circle_ci = (path / ".circleci").is_dir()
    for marker, names in CI_FILES.items():
        setattr(details, marker, any((path / name).exists() for name in names))

    details.has_rustfmt_toml = (path / "rustfmt.toml").exists()
    details.has_dot_rustfmt_toml = (path / ".rustfmt.toml").exists()
    details.cargo_toml_in_root = (path / "Cargo.toml").exists()
    details.commit_count = commit_count(path, timeout)
    return details


class RepoAnalyzer:
    """Writes ``repo_details/<host>/<owner>/<repo>.json`` for every clone."""

    def __init__(self, workspace: Workspace, timeout: int = 300):
        self.workspace = workspace
        self.timeout = timeout

    def analyze_all(self, limit: int = 0) -> int:
        clones = find_clones(self.workspace.repos)
        if limit:
            clones = clones[:limit]

        with elapsed_timer("analyze_repos"), Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Analyzing repositories...", total=len(clones))
            for clone in clones:
                progress.update(task, description=f"Analyzing {clone.owner}/{clone.repo}...")
                path = details_path_for(
                    self.workspace.repo_details, clone.host, clone.owner, clone.repo
                )
                details = collect_details(clone, read_details_file(path), self.timeout)
                write_details_file(path, details)
                progress.advance(task)

        console.print(f"[bold]Analyzed {len(clones)} repositories[/bold]")
        return len(clones)
