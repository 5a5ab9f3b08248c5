"""Tests for the command line entry point."""

import pytest

from digger.main import build_parser, get_workspace, load_config, main


def test_missing_config_exits_with_1(tmp_path):
    with pytest.raises(SystemExit) as exc:
        load_config(tmp_path / "config.yaml")
    assert exc.value.code == 1


def test_load_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"workspace:\n  root: {tmp_path / 'ws'}\n")

    config = load_config(path)

    assert get_workspace(config).root == tmp_path / "ws"


def test_clone_flags():
    args = build_parser().parse_args(["clone-repos", "--limit", "5", "--recent", "30", "--clone", "--force"])
    assert (args.limit, args.recent, args.clone, args.force) == (5, 30, True, True)


def test_stage_failure_exits_with_2(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"workspace:\n  root: {tmp_path / 'ws'}\n")

    with pytest.raises(SystemExit) as exc:
        main(["--config", str(path), "build-site"])
    assert exc.value.code == 2


def test_build_site(dump_workspace, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(f"workspace:\n  root: {dump_workspace.root}\nsite:\n  page_size: 10\n")

    main(["--config", str(path), "build-site", "--limit", "2"])

    assert (dump_workspace.site / "index.html").exists()
    assert (dump_workspace.site / "crates" / "foo.html").exists()
    assert not (dump_workspace.site / "crates" / "qux.html").exists()
