"""Tests for the site generator."""

import json

import pytest

from digger.store.knowledge_base import KnowledgeBase
from digger.store.output import SiteGenerator, collect_paths, commafy, safe_filename


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("<html></html>")


def test_sitemap_paths(tmp_path):
    for name in (
        "index.html",
        "about.html",
        "users/index.html",
        "users/alice.html",
        "crates/foo.html",
        "crates/index.html",
        "vcs/index.html",
        "vcs/github.html",
        "rustfmt/max_width_100.html",
        "robots.txt",
    ):
        touch(tmp_path / name)

    paths = collect_paths(tmp_path)

    assert "/about" in paths
    assert "/users/" in paths
    assert "/" in paths
    assert "/vcs/" in paths
    assert "/vcs/github" in paths
    assert "/rustfmt/max_width_100" in paths
    assert not any(path.startswith("/crates") for path in paths)
    assert "/users/alice" not in paths


def test_commafy():
    assert commafy(1234567) == "1,234,567"
    assert commafy("12345") == "12,345"
    assert commafy("") == ""


def test_safe_filename():
    assert safe_filename("1.70") == "1.70"
    assert safe_filename("na") == "na"
    assert safe_filename("1.70/x y") == "1.70_x_y"


@pytest.fixture
def site(dump_workspace, write_details):
    released = [{"package": {"name": "foo", "version": "0.2.0", "edition": "2021"}}]
    (dump_workspace.data / "released_cargo_toml.json").write_text(json.dumps(released))
    (dump_workspace.data / "released_cargo_toml_errors.json").write_text(
        json.dumps({"bar": "unknown field <flavour>"})
    )
    (dump_workspace.collected_data / "rustfmt.txt").write_text("max_width,100,foo\n")
    write_details("github", "org", "mono", has_rustfmt_toml=True)

    kb = KnowledgeBase(dump_workspace).load()
    generator = SiteGenerator(kb, dump_workspace.site, page_size=2)
    generator.generate_all()
    return dump_workspace.site


def test_generate_all_writes_pages(site):
    for name in (
        "index.html",
        "about.html",
        "about-ci.html",
        "stats.html",
        "all.html",
        "github-but-no-ci.html",
        "interesting-homepages.html",
        "crates/foo.html",
        "users/alice.html",
        "users/index.html",
        "vcs/index.html",
        "vcs/github.html",
        "vcs/no-repo.html",
        "vcs/other-repos.html",
        "edition/index.html",
        "edition/2021.html",
        "edition/na.html",
        "rust-version/index.html",
        "rust_version/index.html",
        "rustfmt/index.html",
        "rustfmt/max_width.html",
        "rustfmt/max_width_100.html",
        "errors/index.html",
        "news/index.html",
        "sitemap.xml",
        "robots.txt",
    ):
        assert (site / name).exists(), name


def test_list_pages_are_capped(site):
    html = (site / "all.html").read_text()
    assert "Total: 4" in html
    assert html.count('href="/crates/') == 2


def test_github_without_ci(site):
    html = (site / "github-but-no-ci.html").read_text()
    assert "/crates/foo" in html
    assert "/crates/qux" not in html


def test_interesting_homepages(site):
    html = (site / "interesting-homepages.html").read_text()
    assert "/crates/baz" in html
    assert "/crates/qux" not in html


def test_users_index(site):
    html = (site / "users" / "index.html").read_text()
    assert "Alice Adams" in html
    assert "/users/github:org:core" in html


def test_sitemap_and_robots(site):
    sitemap = (site / "sitemap.xml").read_text()
    assert "<loc>https://rust-digger.code-maven.com/about</loc>" in sitemap
    assert "<loc>https://rust-digger.code-maven.com/users/</loc>" in sitemap
    assert "/crates/" not in sitemap
    assert "/users/alice<" not in sitemap
    assert (site / "robots.txt").read_text().startswith(
        "Sitemap: https://rust-digger.code-maven.com/sitemap.xml"
    )


def test_errors_page(site):
    html = (site / "errors" / "index.html").read_text()
    assert "unknown field &lt;flavour&gt;" in html
