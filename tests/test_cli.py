"""Tests for the dotsync command line."""

import json
from pathlib import Path

import click

from dotsync import MirrorError
from dotsync.cli import main
import dotsync.sync as sync_mod


def _run(runner, config_file, *args, **kwargs):
    return runner.invoke(main, [*args, "-c", str(config_file)], **kwargs)


def _saved(config_file):
    return json.loads(Path(config_file).read_text())


class TestNew:
    def test_prints_template(self, runner):
        result = runner.invoke(main, ["new"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["dotconfigs_path"] == "~/dotconfigs"
        assert [c["name"] for c in data["configs"]] == ["nvim", "zshrc"]

    def test_write(self, runner, tmp_path):
        path = tmp_path / "fresh.json"
        result = _run(runner, path, "new", "--write")
        assert result.exit_code == 0, result.output
        assert "Wrote" in result.output
        assert _saved(path)["configs"][0]["name"] == "nvim"

    def test_write_refuses_to_overwrite(self, runner, config_file):
        before = config_file.read_text()
        result = _run(runner, config_file, "new", "--write")
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert config_file.read_text() == before


class TestAdd:
    def test_add_and_pull(self, runner, config_file, home, repo_dir):
        (home / ".extrarc").write_text("extra")
        result = _run(runner, config_file, "add", "extra", "~/.extrarc")
        assert result.exit_code == 0, result.output
        assert "Added extra (~/.extrarc)" in result.output
        entry = _saved(config_file)["configs"][-1]
        assert entry["name"] == "extra"
        assert entry["path"] == "~/.extrarc"
        assert entry["kind"] == "file"
        assert (repo_dir / "extra").read_text() == "extra"

    def test_absolute_path_stored_relative_to_home(self, runner, config_file, home):
        (home / ".extrarc").write_text("extra")
        result = _run(runner, config_file, "add", "extra", str(home / ".extrarc"))
        assert result.exit_code == 0, result.output
        assert _saved(config_file)["configs"][-1]["path"] == "~/.extrarc"

    def test_no_pull(self, runner, config_file, home, repo_dir):
        (home / ".extrarc").write_text("extra")
        result = _run(runner, config_file, "add", "extra", "~/.extrarc", "--no-pull")
        assert result.exit_code == 0, result.output
        assert "digest" not in _saved(config_file)["configs"][-1]
        assert not repo_dir.exists()

    def test_duplicate(self, runner, config_file):
        result = _run(runner, config_file, "add", "app", "~/.other")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_failed_pull_leaves_config_unchanged(self, runner, config_file, home, monkeypatch):
        (home / ".extrarc").write_text("extra")
        before = config_file.read_text()

        def failing_mirror(src, dest, **kwargs):
            raise MirrorError(dest, "copy", PermissionError(13, "Permission denied"))

        monkeypatch.setattr(sync_mod, "mirror", failing_mirror)
        result = _run(runner, config_file, "add", "extra", "~/.extrarc")
        assert result.exit_code == 1
        assert "Failed to pull extra" in result.output
        assert config_file.read_text() == before


class TestRemove:
    def test_remove(self, runner, config_file, repo_dir):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "remove", "app")
        assert result.exit_code == 0, result.output
        assert "Removed app" in result.output
        assert [c["name"] for c in _saved(config_file)["configs"]] == ["apprc"]
        assert (repo_dir / "app").is_dir()

    def test_purge(self, runner, config_file, repo_dir):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "remove", "app", "--purge")
        assert result.exit_code == 0, result.output
        assert not (repo_dir / "app").exists()
        assert (repo_dir / "apprc").exists()

    def test_unknown(self, runner, config_file):
        result = _run(runner, config_file, "remove", "nope")
        assert result.exit_code == 1
        assert "No such config: nope" in result.output


class TestPullPush:
    def test_pull(self, runner, config_file, repo_dir):
        result = _run(runner, config_file, "pull")
        assert result.exit_code == 0, result.output
        assert "Pulled 2 config(s), 0 skipped." in result.output
        assert (repo_dir / "apprc").read_text() == "v1"
        assert all("digest" in c for c in _saved(config_file)["configs"])

    def test_second_pull_skips(self, runner, config_file):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "pull")
        assert result.exit_code == 0, result.output
        assert "Pulled 0 config(s), 2 skipped." in result.output

    def test_dry_run(self, runner, config_file, repo_dir):
        result = _run(runner, config_file, "pull", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "2 config(s) would be pulled." in result.output
        assert not repo_dir.exists()
        assert all("digest" not in c for c in _saved(config_file)["configs"])

    def test_dry_run_nothing_to_do(self, runner, config_file):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "push", "-n")
        assert result.exit_code == 0, result.output
        assert "Nothing to push, already in sync." in result.output

    def test_push(self, runner, config_file, repo_dir, live):
        _run(runner, config_file, "pull")
        (repo_dir / "apprc").write_text("v2")
        result = _run(runner, config_file, "push")
        assert result.exit_code == 0, result.output
        assert "Pushed 1 config(s), 1 skipped." in result.output
        assert (live / ".apprc").read_text() == "v2"

    def test_push_without_repository(self, runner, config_file):
        result = _run(runner, config_file, "push")
        assert result.exit_code == 1
        assert "Repository does not exist" in result.output

    def test_force_pull(self, runner, config_file, repo_dir):
        _run(runner, config_file, "pull")
        (repo_dir / "app" / "junk").write_text("junk")
        result = _run(runner, config_file, "force-pull")
        assert result.exit_code == 0, result.output
        assert "Pulled 2 config(s), 0 skipped." in result.output
        assert not (repo_dir / "app" / "junk").exists()

    def test_force_push(self, runner, config_file, live):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "force-push", "-j", "2")
        assert result.exit_code == 0, result.output
        assert "Pushed 2 config(s), 0 skipped." in result.output
        assert (live / ".apprc").read_text() == "v1"

    def test_failure_exit_code(self, runner, config_file, monkeypatch):
        real_mirror = sync_mod.mirror

        def failing_mirror(src, dest, **kwargs):
            if Path(src).name == "app":
                raise MirrorError(dest, "copy", PermissionError(13, "Permission denied"))
            return real_mirror(src, dest, **kwargs)

        monkeypatch.setattr(sync_mod, "mirror", failing_mirror)
        result = _run(runner, config_file, "pull")
        assert result.exit_code == 1
        assert "ERROR: app:" in result.output
        assert "1 config(s) failed to pull: app" in result.output
        configs = _saved(config_file)["configs"]
        assert "digest" not in configs[0]
        assert "digest" in configs[1]

    def test_symlink_warning(self, runner, config_file, live):
        (live / ".config" / "app" / "link").symlink_to(live / ".apprc")
        result = _run(runner, config_file, "pull")
        assert result.exit_code == 0, result.output
        assert "WARNING:" in result.output
        assert "symlink skipped" in result.output

    def test_verbose(self, runner, config_file, repo_dir):
        result = runner.invoke(main, ["-v", "pull", "-c", str(config_file)])
        assert result.exit_code == 0, result.output
        assert f"Repository: {repo_dir}" in result.output


class TestMaintenance:
    def test_clear_metadata(self, runner, config_file):
        _run(runner, config_file, "pull")
        result = _run(runner, config_file, "clear-metadata")
        assert result.exit_code == 0, result.output
        assert "Cleared metadata of 2 config(s)" in result.output
        assert all("digest" not in c for c in _saved(config_file)["configs"])

    def test_fixup(self, runner, config_file):
        data = _saved(config_file)
        data["configs"].append({"name": "app", "path": "~/.dup"})
        config_file.write_text(json.dumps(data))
        result = _run(runner, config_file, "fixup")
        assert result.exit_code == 0, result.output
        assert "1 problem(s) fixed" in result.output
        assert len(_saved(config_file)["configs"]) == 2

    def test_clean(self, runner, config_file, repo_dir):
        _run(runner, config_file, "pull")
        (repo_dir / ".git").mkdir()
        result = _run(runner, config_file, "clean")
        assert result.exit_code == 0, result.output
        assert f"Cleaned 2 config(s) from {repo_dir}" in result.output
        assert [p.name for p in repo_dir.iterdir()] == [".git"]


class TestConfigFile:
    def test_print_config(self, runner, config_file, repo_dir):
        result = _run(runner, config_file, "print-config")
        assert result.exit_code == 0, result.output
        assert f"dotconfigs_path: {repo_dir}" in result.output
        assert "hash_names: true  algorithm: blake2b" in result.output
        assert "  app\t~/.config/app\t-\t-" in result.output

    def test_print_config_without_patterns(self, runner, config_file):
        result = _run(runner, config_file, "print-config")
        assert "exclude:" not in result.output

    def test_print_config_effective_patterns(self, runner, config_file, home):
        (home / ".dotsyncignore").write_text("*.swp\n")
        data = _saved(config_file)
        data["exclude"] = ["*.bak"]
        data["exclude_from"] = "~/.dotsyncignore"
        config_file.write_text(json.dumps(data))
        result = _run(runner, config_file, "print-config")
        assert result.exit_code == 0, result.output
        assert "exclude: *.bak, *.swp" in result.output
        assert "exclude_from: ~/.dotsyncignore" in result.output

    def test_print_config_json(self, runner, config_file):
        result = _run(runner, config_file, "print-config", "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["configs"][1]["name"] == "apprc"

    def test_envvar(self, runner, config_file):
        result = runner.invoke(main, ["print-config"],
                               env={"DOTSYNC_CONFIG": str(config_file)})
        assert result.exit_code == 0, result.output
        assert f"config: {config_file}" in result.output

    def test_missing_config(self, runner, tmp_path):
        result = _run(runner, tmp_path / "nope.json", "pull")
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        result = _run(runner, path, "pull")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_edit_valid(self, runner, config_file, monkeypatch):
        calls = []
        monkeypatch.setattr(click, "edit", lambda filename=None, **kw: calls.append(filename))
        result = _run(runner, config_file, "edit")
        assert result.exit_code == 0, result.output
        assert calls == [str(config_file)]

    def test_edit_invalid(self, runner, config_file, monkeypatch):
        def broken_edit(filename=None, **kw):
            Path(filename).write_text("{oops")

        monkeypatch.setattr(click, "edit", broken_edit)
        result = _run(runner, config_file, "edit")
        assert result.exit_code == 1
        assert "no longer valid" in result.output
