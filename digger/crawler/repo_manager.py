"""Repository cloning and management."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from ..common import TIMESTAMP_FORMAT, get_owner_and_repo
from ..models import Crate
from ..store.vcs_details import load_vcs_details, save_vcs_details
from ..workspace import Workspace
from .http import check_url

logger = logging.getLogger(__name__)
console = Console()


@dataclass
class GitResult:
    """Outcome of one git command."""
    success: bool
    error: str = ""
    output: str = ""


@dataclass
class CloneStats:
    """Counters of one cloner run."""
    processed: int = 0
    cloned: int = 0
    updated: int = 0
    failed: int = 0
    repo_reuse: dict[str, int] = field(default_factory=dict)


def run_git(args: list[str], cwd: Path | None = None, timeout: int = 300) -> GitResult:
    """Run ``git <args>`` and capture its stderr on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return GitResult(success=False, error=f"git {args[0]} timed out")
    except OSError as e:
        return GitResult(success=False, error=f"Could not run git {args[0]}: {e}")

    if result.returncode != 0:
        return GitResult(success=False, error=result.stderr.strip() or f"exit code {result.returncode}")
    return GitResult(success=True, output=result.stdout.strip())


def resolve_url(krate: Crate) -> str:
    """Lower-cased source URL: the repository, else the homepage."""
    if krate.repository:
        return krate.repository.lower()
    return krate.homepage.lower()


def crate_too_old(krate: Crate, before: datetime) -> bool:
    """True when ``updated_at`` is older than ``before`` or cannot be parsed."""
    try:
        updated_at = datetime.strptime(krate.updated_at, TIMESTAMP_FORMAT)
    except ValueError as e:
        logger.error(
            "Error parsing timestamp '%s' of the crate %s (%s)",
            krate.updated_at,
            krate.name,
            e,
        )
        return True
    return updated_at < before


class RepoManager:
    """Manages the local clones under ``repos/<host>/<owner>/<repo>``."""

    def __init__(
        self,
        workspace: Workspace,
        client: httpx.Client,
        timeout: int = 300,
    ):
        self.workspace = workspace
        self.base_path = workspace.repos
        self.client = client
        self.timeout = timeout

    def get_repo_path(self, host: str, owner: str, repo: str) -> Path:
        """Get local path for a repository."""
        return self.base_path / host / owner / repo

    def clone_or_update(
        self,
        host: str,
        owner: str,
        repo: str,
        url: str,
        clone_only: bool = False,
    ) -> GitResult:
        """Clone the repository, or pull it when a clone already exists.

        With ``clone_only`` an existing clone is left alone. The error of a failed
        clone or pull is remembered in the repository details so later runs can
        skip it; a successful one clears it.
        """
        local_path = self.get_repo_path(host, owner, repo)

        if local_path.exists():
            if clone_only:
                logger.info("%s already cloned, not updating", local_path)
                return GitResult(success=True)
            logger.info("git pull in %s", local_path)
            result = run_git(["pull"], cwd=local_path, timeout=self.timeout)
            if not result.success:
                logger.warning("git pull failed in %s: %s", local_path, result.error)
        else:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            clone_url = f"https://{host}.com/{owner}/{repo}"
            logger.info("git clone %s %s", clone_url, local_path)
            result = run_git(["clone", clone_url, str(local_path)], timeout=self.timeout)
            if not result.success:
                logger.warning("git clone failed for '%s': %s", clone_url, result.error)
                # A killed clone leaves a partial checkout that must not be pulled later.
                shutil.rmtree(local_path, ignore_errors=True)

        self.record_git_error(url, result)
        return result

    def record_git_error(self, url: str, result: GitResult) -> None:
        """Store the error of a failed git command, clear it after a success."""
        details = load_vcs_details(self.workspace.repo_details, url)
        error = "" if result.success else result.error
        if details.git_clone_error != error:
            details.git_clone_error = error
            save_vcs_details(self.workspace.repo_details, url, details)

    def update_repositories(
        self,
        crates: list[Crate],
        limit: int = 0,
        recent: int = 0,
        force: bool = False,
        clone_only: bool = False,
        now: datetime | None = None,
    ) -> CloneStats:
        """Clone or update the source repository of every package.

        Each URL is handled once per run; further packages of the same
        mono-repo only bump its reuse counter.
        """
        stats = CloneStats()
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        before = now - timedelta(days=recent)
        if recent:
            logger.info("Only crates updated after %s", before)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Cloning repos...", total=len(crates))

            for krate in crates:
                if limit and stats.processed >= limit:
                    break
                progress.advance(task)

                url = resolve_url(krate)
                if not url:
                    continue

                if url in stats.repo_reuse:
                    stats.repo_reuse[url] += 1
                    logger.info("Repository '%s' already handled (crate %s)", url, krate.name)
                    continue
                stats.repo_reuse[url] = 1

                host, owner, repo = get_owner_and_repo(url)
                if not owner:
                    continue

                details = load_vcs_details(self.workspace.repo_details, url)
                if details.git_clone_error and not force:
                    logger.info("Skipping '%s', cloning failed before", url)
                    continue

                if recent and crate_too_old(krate, before):
                    continue

                status = check_url(self.client, url)
                if status != 200:
                    logger.error("Error accessing the repository '%s' status: %s", url, status)
                    continue

                logger.info("update (%d/%d) repository '%s'", stats.processed, limit, url)
                existed = self.get_repo_path(host, owner, repo).exists()
                result = self.clone_or_update(host, owner, repo, url, clone_only=clone_only)
                stats.processed += 1
                if not result.success:
                    stats.failed += 1
                elif existed:
                    stats.updated += 1
                else:
                    stats.cloned += 1

        console.print(
            f"\n[bold]Processed {stats.processed} repositories "
            f"({stats.cloned} cloned, {stats.updated} updated, {stats.failed} failed)[/bold]"
        )
        return stats
