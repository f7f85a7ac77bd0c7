"""Shared fixtures for dotsync tests."""

import json

import pytest
from click.testing import CliRunner

from dotsync import DotConfig


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """An empty home directory, installed as $HOME."""
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    return h


@pytest.fixture
def tree(tmp_path):
    """A small source tree: a.txt and sub/b.txt."""
    root = tmp_path / "src"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("hello")
    (root / "sub" / "b.txt").write_text("world")
    return root


@pytest.fixture
def live(home):
    """Live configs: ~/.config/app (a directory) and ~/.apprc (a file)."""
    app = home / ".config" / "app"
    (app / "sub").mkdir(parents=True)
    (app / "a.txt").write_text("hello")
    (app / "sub" / "b.txt").write_text("world")
    (home / ".apprc").write_text("v1")
    return home


@pytest.fixture
def repo_dir(tmp_path):
    return tmp_path / "dotconfigs"


@pytest.fixture
def config_file(tmp_path, live, repo_dir):
    """A config file tracking the two live configs."""
    path = tmp_path / "dotsync.json"
    path.write_text(json.dumps({
        "dotconfigs_path": str(repo_dir),
        "configs": [
            {"name": "app", "path": "~/.config/app"},
            {"name": "apprc", "path": "~/.apprc"},
        ],
    }))
    return path


@pytest.fixture
def config(config_file):
    return DotConfig.load(config_file)


@pytest.fixture
def snapshot():
    """Return a function mapping a tree to {relative path: bytes} of its files."""
    def _snapshot(root):
        return {
            p.relative_to(root).as_posix(): p.read_bytes()
            for p in sorted(root.rglob("*"))
            if p.is_file() and not p.is_symlink()
        }
    return _snapshot
