"""Render the static site from the joined package table."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader, select_autoescape
from rich.console import Console

from .. import __version__
from ..common import elapsed_timer, percentage
from ..models import Crate
from ..query.aggregates import (
    MANIFEST_FIELDS,
    collect_repos,
    histogram,
    load_collected_rustfmt,
    load_repo_types,
    manifest_value,
    rustfmt_counts,
)
from ..query.filters import DEFAULT_BORING_HOMEPAGES, FILTERS, CrateFilter, homepage_filter, select
from .knowledge_base import KnowledgeBase

logger = logging.getLogger(__name__)
console = Console()

PACKAGE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_TEMPLATES = PACKAGE_DIR / "templates"
DEFAULT_REPO_TYPES = PACKAGE_DIR / "repo_types.yaml"
DEFAULT_URL = "https://rust-digger.code-maven.com"
PAGE_SIZE = 100

# (output file without extension, template, title)
STATIC_PAGES = (
    ("index", "pages/index.html", "Rust Digger"),
    ("about", "pages/about.html", "About Rust Digger"),
    ("about-ci", "pages/about-ci.html", "About Continuous Integration"),
    ("about-repository", "pages/about-repository.html", "About repositories"),
    ("about-fmt", "pages/about-fmt.html", "About rustfmt"),
)

SITE_FOLDERS = ("crates", "users", "news", "vcs", "rustfmt", "errors") + tuple(
    folder for folder, _attribute in MANIFEST_FIELDS
)

# Subtrees left out of the sitemap; users/index.html is kept.
SITEMAP_SKIP = {"crates", "users"}


def commafy(value: Any) -> str:
    """Format an integer with thousands separators."""
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError):
        return str(value)


def safe_filename(name: str) -> str:
    """Convert a value to something usable as a file name."""
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in name).lower()


def create_environment(templates_dir: Path) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["commafy"] = commafy
    return env


def collect_paths(site_dir: Path) -> list[str]:
    """URL paths of the rendered pages that belong in the sitemap.

    ``index.html`` files map to their directory, every other page drops its
    ``.html`` suffix. Per-package pages and per-user pages are left out.
    """
    paths = []
    for path in sorted(site_dir.rglob("*.html")):
        parts = path.relative_to(site_dir).parts
        if parts[0] in SITEMAP_SKIP and len(parts) > 1:
            if parts[0] == "crates" or parts[1:] != ("index.html",):
                continue
        if parts[-1] == "index.html":
            folder = "/".join(parts[:-1])
            paths.append(f"/{folder}/" if folder else "/")
        else:
            paths.append("/" + "/".join(parts)[: -len(".html")])
    return paths


class SiteGenerator:
    """Writes every page of the site into ``site_dir``."""

    def __init__(
        self,
        kb: KnowledgeBase,
        site_dir: Path | str,
        templates_dir: Path | str = DEFAULT_TEMPLATES,
        repo_types_path: Path | str = DEFAULT_REPO_TYPES,
        site_url: str = DEFAULT_URL,
        page_size: int = PAGE_SIZE,
        boring_homepages: tuple[str, ...] = DEFAULT_BORING_HOMEPAGES,
        rustfmt_path: Path | None = None,
    ):
        self.kb = kb
        self.site_dir = Path(site_dir)
        self.templates_dir = Path(templates_dir)
        self.repo_types_path = Path(repo_types_path)
        self.site_url = site_url.rstrip("/")
        self.page_size = page_size
        self.boring_homepages = tuple(boring_homepages)
        self.rustfmt_path = rustfmt_path or kb.workspace.collected_data / "rustfmt.txt"
        self.env = create_environment(self.templates_dir)
        self.utc = datetime.now(timezone.utc)

    def create_folders(self) -> None:
        self.site_dir.mkdir(parents=True, exist_ok=True)
        for folder in SITE_FOLDERS:
            (self.site_dir / folder).mkdir(exist_ok=True)

    def render(self, template: str, target: Path, **context: Any) -> None:
        """Render ``template`` into ``target`` with the common globals."""
        html = self.env.get_template(template).render(
            version=__version__,
            utc=self.utc.strftime("%Y-%m-%d %H:%M:%S UTC"),
            **context,
        )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(html + "\n", encoding="utf-8")

    def render_list_page(self, filename: str, title: str, crates: list[Crate]) -> int:
        """Render one list page (at most ``page_size`` rows) and return the total."""
        logger.debug("render_list_page: %s (%d crates)", filename, len(crates))
        self.render(
            "crate_list_page.html",
            self.site_dir / f"{filename}.html",
            title=title,
            filename=filename,
            total=len(crates),
            crates=crates[: self.page_size],
        )
        return len(crates)

    def render_filtered(self, crate_filter: CrateFilter) -> int:
        crates = select(self.kb.crates, crate_filter.predicate)
        return self.render_list_page(crate_filter.filename, crate_filter.title, crates)

    # Fan-out tasks. Each one writes to its own part of the tree.

    def generate_crate_pages(self) -> None:
        with elapsed_timer("generate_crate_pages"):
            for krate in self.kb.crates:
                self.render(
                    "crate.html",
                    self.site_dir / "crates" / f"{krate.name}.html",
                    title=krate.name,
                    crate=krate,
                )

    def generate_user_pages(self) -> None:
        with elapsed_timer("generate_user_pages"):
            owners = self.kb.owners()
            for user in owners:
                self.render(
                    "user.html",
                    self.site_dir / "users" / f"{user.gh_login_lower}.html",
                    title=user.name or user.gh_login,
                    user=user,
                    crates=self.kb.crates_of(user.id),
                )
            self.render(
                "users.html",
                self.site_dir / "users" / "index.html",
                title="Users",
                users=owners,
            )

    def generate_error_pages(self) -> None:
        self.render(
            "errors.html",
            self.site_dir / "errors" / "index.html",
            title="Errors in Cargo.toml files",
            errors=sorted(self.kb.errors.items()),
            nameless_errors=sorted(self.kb.nameless_errors.items()),
            missing=sorted(self.kb.missing),
            in_lower_case=sorted(self.kb.in_lower_case),
        )

    def render_news_pages(self) -> None:
        news_dir = self.templates_dir / "news"
        if not news_dir.is_dir():
            logger.warning("No news templates in %s", news_dir)
            return
        for path in sorted(news_dir.glob("*.html")):
            logger.info("news file: %s", path.name)
            self.render(f"news/{path.name}", self.site_dir / "news" / path.name)

    def render_static_pages(self) -> None:
        for filename, template, title in STATIC_PAGES:
            self.render(
                template,
                self.site_dir / f"{filename}.html",
                title=title,
                total=len(self.kb.crates),
            )

    def generate_filtered_lists(self) -> dict[str, int]:
        """Filtered lists, buckets, histograms, stats and formatter pages."""
        with elapsed_timer("generate_filtered_lists"):
            stats: dict[str, int] = {}
            for crate_filter in FILTERS:
                count = self.render_filtered(crate_filter)
                if crate_filter.stat:
                    stats[crate_filter.stat] = count

            stats["no_repo"] = self.generate_repo_pages()
            self.generate_histogram_pages()
            self.render_stats_page(stats)
            self.generate_rustfmt_pages(stats)
        return stats

    def generate_homepages(self) -> int:
        return self.render_filtered(homepage_filter(self.boring_homepages))

    # Parts of the filtered-lists task.

    def generate_repo_pages(self) -> int:
        """Bucket pages and ``vcs/index.html``; returns the no-repository count."""
        buckets = collect_repos(self.kb.crates, load_repo_types(self.repo_types_path))
        no_repo = 0
        for bucket in buckets:
            repo_type = bucket.repo_type
            if repo_type.name == "no-repo":
                title = "Crates without repository"
                no_repo = repo_type.count
            elif repo_type.name == "other-repos":
                title = "Crates with other repositories we don't recognize"
            else:
                title = f"Crates in {repo_type.display}"
            self.render_list_page(f"vcs/{repo_type.name}", title, bucket.crates)

        self.render(
            "repos.html",
            self.site_dir / "vcs" / "index.html",
            title="Repositories",
            repos=[bucket.repo_type for bucket in buckets],
        )
        return no_repo

    def generate_histogram_pages(self) -> None:
        for folder, attribute in MANIFEST_FIELDS:
            counts = histogram(self.kb.crates, attribute)
            rows = []
            for value, count in counts:
                filename = f"{folder}/{safe_filename(value)}"
                crates = select(
                    self.kb.crates,
                    lambda krate, value=value: manifest_value(krate, attribute) == value,
                )
                self.render_list_page(filename, f"Crates with {folder} {value}", crates)
                rows.append(
                    {
                        "value": value,
                        "count": count,
                        "percentage": percentage(count, len(self.kb.crates)),
                        "filename": filename,
                    }
                )
            self.render(
                "histogram.html",
                self.site_dir / folder / "index.html",
                title=f"Crates by {folder}",
                field=folder,
                rows=rows,
            )

    def render_stats_page(self, stats: dict[str, int]) -> None:
        total = len(self.kb.crates)
        self.render(
            "stats.html",
            self.site_dir / "stats.html",
            title="Rust Digger Stats",
            total=total,
            stats=stats,
            percentage={key: percentage(value, total) for key, value in stats.items()},
        )

    def generate_rustfmt_pages(self, stats: dict[str, int]) -> None:
        rows = load_collected_rustfmt(self.rustfmt_path)
        count_by_key, count_by_pair = rustfmt_counts(rows)

        for key, _count in count_by_key:
            names = {name for k, _value, name in rows if k == key}
            self.render_list_page(
                f"rustfmt/{key}",
                f"Crates using the {key} formatting option",
                select(self.kb.crates, lambda krate, names=names: krate.name in names),
            )

        for key, value, _count in count_by_pair:
            names = {name for k, v, name in rows if k == key and v == value}
            self.render_list_page(
                f"rustfmt/{key}_{value}",
                f"Crates using the {key} formatting option set to {value}",
                select(self.kb.crates, lambda krate, names=names: krate.name in names),
            )

        self.render(
            "rustfmt.html",
            self.site_dir / "rustfmt" / "index.html",
            title="Rustfmt Stats",
            count_by_key=count_by_key,
            count_by_pair=count_by_pair,
            stats=stats,
            number_of_crates=len(self.kb.crates),
            with_rustfmt=stats.get("has_rustfmt_toml", 0) + stats.get("has_dot_rustfmt_toml", 0),
        )

    # Finishing steps, run after every task has completed.

    def generate_sitemap(self) -> list[str]:
        pages = collect_paths(self.site_dir)
        self.render(
            "sitemap.xml",
            self.site_dir / "sitemap.xml",
            url=self.site_url,
            timestamp=self.utc.strftime("%Y-%m-%d"),
            pages=pages,
        )
        return pages

    def generate_robots_txt(self) -> None:
        text = f"Sitemap: {self.site_url}/sitemap.xml\n\nUser-agent: *\n"
        (self.site_dir / "robots.txt").write_text(text, encoding="utf-8")

    def generate_all(self) -> None:
        """Run the independent page generators in parallel, then the sitemap."""
        self.create_folders()
        tasks: list[Callable[[], Any]] = [
            self.generate_crate_pages,
            self.generate_user_pages,
            self.generate_error_pages,
            self.render_news_pages,
            self.render_static_pages,
            self.generate_filtered_lists,
            self.generate_homepages,
        ]
        with elapsed_timer("generate_site"):
            with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
                futures = [pool.submit(task) for task in tasks]
                # Re-raise the first failure once every task has finished.
                for future in futures:
                    future.result()

            self.generate_sitemap()
            self.generate_robots_txt()

        console.print(f"[green]✓[/green] Generated site in {self.site_dir}")
