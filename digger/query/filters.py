"""Predicates over joined packages and the list pages built from them."""

from dataclasses import dataclass
from typing import Callable, Iterable

from ..common import get_owner_and_repo
from ..models import Crate

Predicate = Callable[[Crate], bool]

DEFAULT_BORING_HOMEPAGES = (
    "https://github.com/",
    "https://gitlab.com/",
    "https://docs.rs/",
    "https://crates.io/",
    "https://lib.rs/",
)


@dataclass(frozen=True)
class CrateFilter:
    """One filtered list page: ``<filename>.html`` with a title."""

    filename: str
    title: str
    predicate: Predicate
    stat: str = ""


def select(crates: Iterable[Crate], predicate: Predicate) -> list[Crate]:
    """Packages matching ``predicate``, keeping their order."""
    return [krate for krate in crates if predicate(krate)]


def repository_host(krate: Crate) -> str:
    if not krate.repository:
        return ""
    host, owner, _repo = get_owner_and_repo(krate.repository)
    if not owner:
        return ""
    return host


def on_github_but_no_ci(krate: Crate) -> bool:
    return repository_host(krate) == "github" and not krate.details.has_ci


def on_gitlab_but_no_ci(krate: Crate) -> bool:
    return repository_host(krate) == "gitlab" and not krate.details.has_ci


def has_homepage_no_repo(krate: Crate) -> bool:
    return bool(krate.homepage) and not krate.repository


def no_homepage_no_repo(krate: Crate) -> bool:
    return not krate.homepage and not krate.repository


def no_owner_name(krate: Crate) -> bool:
    return not krate.owner_name


def has_no_owner(krate: Crate) -> bool:
    return not krate.owner_name and not krate.owner_gh_login


def has_edition(krate: Crate) -> bool:
    return krate.cargo is not None and krate.cargo.package.edition is not None


def has_rust_dash_version(krate: Crate) -> bool:
    return krate.cargo is not None and krate.cargo.package.rust_dash_version is not None


def no_edition_no_rust_version(krate: Crate) -> bool:
    return not has_edition(krate) and not has_rust_dash_version(krate)


def has_edition_and_rust_version(krate: Crate) -> bool:
    return has_edition(krate) and has_rust_dash_version(krate)


def no_cargo_lock_no_main_rs(krate: Crate) -> bool:
    return not krate.analysis.has_cargo_lock and not krate.analysis.has_main_rs


def is_interesting_homepage(krate: Crate, boring: Iterable[str] = DEFAULT_BORING_HOMEPAGES) -> bool:
    """A homepage that is neither a code host, the docs site nor the registry."""
    if not krate.homepage:
        return False
    homepage = krate.homepage.lower()
    return not any(homepage.startswith(prefix.lower()) for prefix in boring)


FILTERS: list[CrateFilter] = [
    CrateFilter("all", "Rust Digger", lambda krate: True),
    CrateFilter(
        "has-cargo-toml-in-root",
        "Has Cargo.toml file in the root",
        lambda krate: krate.details.cargo_toml_in_root,
        "has_cargo_toml_in_root",
    ),
    CrateFilter(
        "has-no-cargo-toml-in-root",
        "Has no Cargo.toml file in the root",
        lambda krate: not krate.details.cargo_toml_in_root,
        "has_no_cargo_toml_in_root",
    ),
    CrateFilter(
        "has-rustfmt-toml",
        "Has rustfmt.toml file",
        lambda krate: krate.details.has_rustfmt_toml,
        "has_rustfmt_toml",
    ),
    CrateFilter(
        "has-dot-rustfmt-toml",
        "Has .rustfmt.toml file",
        lambda krate: krate.details.has_dot_rustfmt_toml,
        "has_dot_rustfmt_toml",
    ),
    CrateFilter(
        "has-both-rustfmt-toml",
        "Has both rustfmt.toml and .rustfmt.toml file",
        lambda krate: krate.details.has_rustfmt_toml and krate.details.has_dot_rustfmt_toml,
        "has_both_rustfmt_toml",
    ),
    CrateFilter("github-but-no-ci", "On GitHub but has no CI", on_github_but_no_ci, "github_but_no_ci"),
    CrateFilter("gitlab-but-no-ci", "On GitLab but has no CI", on_gitlab_but_no_ci, "gitlab_but_no_ci"),
    CrateFilter(
        "has-homepage-but-no-repo",
        "Has homepage, but no repository",
        has_homepage_no_repo,
        "home_page_but_no_repo",
    ),
    CrateFilter(
        "no-homepage-no-repo",
        "No repository, no homepage",
        no_homepage_no_repo,
        "no_homepage_no_repo_crates",
    ),
    CrateFilter(
        "crates-without-owner-name",
        "Crates without owner name",
        no_owner_name,
        "crates_without_owner_name",
    ),
    CrateFilter("crates-without-owner", "Crates without owner", has_no_owner, "crates_without_owner"),
    CrateFilter(
        "no-edition-no-rust-version",
        "Has neither edition nor rust-version",
        no_edition_no_rust_version,
        "no_edition_no_rust_version",
    ),
    CrateFilter(
        "has-edition-and-rust-version",
        "Has both edition and rust-version",
        has_edition_and_rust_version,
        "has_edition_and_rust_version",
    ),
    CrateFilter(
        "has-cargo-lock",
        "Has Cargo.lock file",
        lambda krate: krate.analysis.has_cargo_lock,
        "has_cargo_lock",
    ),
    CrateFilter(
        "no-cargo-lock",
        "Has no Cargo.lock file",
        lambda krate: not krate.analysis.has_cargo_lock,
        "no_cargo_lock",
    ),
    CrateFilter(
        "no-cargo-lock-no-main-rs",
        "Has no Cargo.lock file and no src/main.rs",
        no_cargo_lock_no_main_rs,
        "no_cargo_lock_no_main_rs",
    ),
]


def homepage_filter(boring: Iterable[str] = DEFAULT_BORING_HOMEPAGES) -> CrateFilter:
    prefixes = tuple(boring)
    return CrateFilter(
        "interesting-homepages",
        "Crates with interesting homepages",
        lambda krate: is_interesting_homepage(krate, prefixes),
        "interesting_homepages",
    )
