"""Tests for restore planning, script generation and execution."""

import os
import shutil
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from machinist.actions.bundle import default_bundle_dir, prepare_bundle_dir, snapshot_config_files
from machinist.actions.executor import RestoreExecutor
from machinist.actions.planner import (
    build_restore_plan,
    enumerate_stages,
    filter_stages,
    format_dry_run,
    parse_stage_list,
)
from machinist.actions.script import generate_restore_script, home_path, render_stage
from machinist.core.errors import BundleError, ConfigurationError
from machinist.core.manifest import read_manifest
from machinist.core.models import ConfigFile, Package, Repository
from machinist.core.orchestrator import ProbeRegistry
from machinist.core.sections import (
    DockerSection,
    FoldersSection,
    GitReposSection,
    GitSection,
    HomebrewSection,
    NodeSection,
    ShellSection,
)
from machinist.core.snapshot import Snapshot
from machinist.discovery.shell import ShellProbe


class TestStageList:
    """Tests for stage enumeration and filtering."""

    def test_enumerate_stages(self, sample_snapshot):
        """Test stages follow section table order."""
        assert enumerate_stages(sample_snapshot) == ["homebrew", "shell", "git_repos", "crontab"]

    def test_parse_stage_list(self):
        """Test comma-separated parsing drops blanks."""
        assert parse_stage_list("homebrew, shell,,git ") == ["homebrew", "shell", "git"]
        assert parse_stage_list("") == []
        assert parse_stage_list(None) == []

    def test_only(self):
        """Test --only keeps enumeration order."""
        stages = ["homebrew", "shell", "crontab"]
        assert filter_stages(stages, only=["crontab", "homebrew"]) == ["homebrew", "crontab"]

    def test_skip(self):
        """Test --skip removes stages."""
        stages = ["homebrew", "shell", "crontab"]
        assert filter_stages(stages, skip=["shell"]) == ["homebrew", "crontab"]

    def test_unknown_names_ignored(self):
        """Test unknown stage names are not an error."""
        stages = ["homebrew", "shell"]
        assert filter_stages(stages, only=["shell", "nonsense"]) == ["shell"]
        assert filter_stages(stages, skip=["nonsense"]) == stages

    def test_only_and_skip_conflict(self):
        """Test --only with --skip is rejected."""
        with pytest.raises(ConfigurationError):
            filter_stages(["shell"], only=["shell"], skip=["homebrew"])


class TestRestorePlan:
    """Tests for build_restore_plan and the dry run."""

    def test_numbered_stages(self, sample_snapshot):
        """Test stages are numbered within the filtered plan."""
        plan = build_restore_plan(sample_snapshot, skip=["homebrew"])

        assert plan.stage_keys == ["shell", "git_repos", "crontab"]
        assert [s.label for s in plan.stages] == [
            "[1/3] Shell Configuration",
            "[2/3] Git Repositories",
            "[3/3] Crontab",
        ]

    def test_conflict_checked_first(self):
        """Test the option conflict is raised even for an empty snapshot."""
        with pytest.raises(ConfigurationError):
            build_restore_plan(Snapshot(), only=["shell"], skip=["git"])

    def test_empty_plan(self):
        """Test a snapshot without sections gives an empty plan."""
        plan = build_restore_plan(Snapshot())

        assert plan.is_empty
        assert plan.stage_count == 0

    def test_dry_run(self, sample_snapshot):
        """Test the dry-run report lists stages and the manifest."""
        text = format_dry_run(build_restore_plan(sample_snapshot, only=["shell"]))

        assert "Dry run: no changes will be made" in text
        assert "Source:       workstation" in text
        assert "Architecture: arm64" in text
        assert "[1/1] Shell Configuration (shell)" in text
        assert "--- manifest ---" in text
        assert 'default_shell = "/bin/zsh"' in text

    def test_dry_run_empty(self):
        """Test the dry-run report for an empty plan."""
        text = format_dry_run(build_restore_plan(Snapshot()))

        assert "(nothing to restore)" in text


class TestRestoreScript:
    """Tests for restore script generation."""

    def test_zero_stages_is_complete(self):
        """Test a script with no stages still has header and footer."""
        script = generate_restore_script(build_restore_plan(Snapshot()))

        assert script.startswith("#!/bin/bash\n")
        assert "set -uo pipefail" in script
        assert "STAGE_TOTAL=0" in script
        assert "run_stage '" not in script
        assert "machinist restore completed in ${ELAPSED}s" in script
        assert script.rstrip().endswith("exit 0")

    def test_stage_total_and_calls(self, sample_snapshot):
        """Test every stage gets a function and a run_stage call."""
        script = generate_restore_script(build_restore_plan(sample_snapshot))

        assert "STAGE_TOTAL=4" in script
        for key in ("homebrew", "shell", "git_repos", "crontab"):
            assert f"stage_{key}() {{" in script
        assert "run_stage Homebrew stage_homebrew" in script
        assert "run_stage 'Shell Configuration' stage_shell" in script
        assert script.index("stage_homebrew\n") < script.index("stage_crontab\n")

    def test_failure_does_not_stop(self, sample_snapshot):
        """Test stages run in subshells and failures are counted."""
        script = generate_restore_script(build_restore_plan(sample_snapshot))

        assert '( set -e; "$fn" )' in script
        assert "PIPESTATUS[0]" in script
        assert "STAGE_FAIL=$((STAGE_FAIL + 1))" in script
        assert "continuing" in script

    def test_architecture_check(self, sample_snapshot):
        """Test the script compares source and current architecture."""
        script = generate_restore_script(build_restore_plan(sample_snapshot))

        assert "SOURCE_ARCH=arm64" in script
        assert 'CURRENT_ARCH="$(uname -m)"' in script
        assert "Architecture mismatch" in script

    def test_filtered_sections_absent(self, sample_snapshot):
        """Test skipped sections leave no trace in the script."""
        script = generate_restore_script(build_restore_plan(sample_snapshot, only=["shell"]))

        assert "stage_homebrew" not in script
        assert "brew install ripgrep" not in script
        assert "git clone" not in script
        assert "STAGE_TOTAL=1" in script

    def test_homebrew_idempotent(self, sample_snapshot):
        """Test Homebrew actions check before installing."""
        script = generate_restore_script(build_restore_plan(sample_snapshot, only=["homebrew"]))

        assert "brew tap | grep -qxF homebrew/core || brew tap homebrew/core" in script
        assert "brew list git &>/dev/null || brew install git" in script
        assert "brew list --cask iterm2 &>/dev/null || brew install --cask iterm2" in script
        assert "brew services start postgresql@16" in script
        assert "brew services start redis" not in script

    def test_shell_idempotent(self, sample_snapshot):
        """Test shell config files and login shell are restored safely."""
        script = generate_restore_script(build_restore_plan(sample_snapshot, only=["shell"]))

        assert 'cmp -s "$BUNDLE_DIR"/configs/shell/.zshrc "$HOME"/.zshrc' in script
        assert '[ "$SHELL" = /bin/zsh ] || chsh -s /bin/zsh' in script
        assert '[ -d "$HOME/.oh-my-zsh" ]' in script

    def test_no_chsh_without_default_shell(self):
        """Test chsh is only emitted when a default shell is recorded."""
        snapshot = Snapshot()
        snapshot.set("shell", ShellSection(prompt="starship"))

        script = generate_restore_script(build_restore_plan(snapshot))

        assert "chsh" not in script

    def test_git_repos_idempotent(self, sample_snapshot):
        """Test repositories are cloned only when missing."""
        script = generate_restore_script(build_restore_plan(sample_snapshot, only=["git_repos"]))

        assert '[ -d "$HOME"/Code/machinist ] || git clone --branch main' in script

    def test_crontab_idempotent(self, sample_snapshot):
        """Test crontab entries are appended only when missing."""
        script = generate_restore_script(build_restore_plan(sample_snapshot, only=["crontab"]))

        assert "grep -qxF -- '0 3 * * * /usr/local/bin/backup'" in script
        assert "crontab -" in script

    def test_encrypted_file_skipped(self):
        """Test encrypted files are reported and not copied."""
        snapshot = Snapshot()
        snapshot.set(
            "git",
            GitSection(
                config_files=[
                    ConfigFile(source=".gitconfig", bundle_path="configs/git/.gitconfig"),
                    ConfigFile(
                        source=".git-credentials",
                        bundle_path="configs/git/.git-credentials.age",
                        encrypted=True,
                    ),
                ]
            ),
        )

        script = generate_restore_script(build_restore_plan(snapshot))

        assert "WARNING: skipping encrypted file .git-credentials" in script
        assert '"$HOME"/.gitconfig' in script
        assert "cp \"$BUNDLE_DIR\"/configs/git/.git-credentials.age" not in script

    def test_generic_section_review_note(self):
        """Test sections without config files ask for manual review."""
        snapshot = Snapshot()
        snapshot.set("docker", DockerSection(runtime="colima"))

        script = generate_restore_script(build_restore_plan(snapshot))

        assert "Review Docker settings manually (manifest section [docker])" in script

    def test_empty_stage_body(self):
        """Test a stage with nothing to do is still a valid function."""
        snapshot = Snapshot()
        snapshot.set("node", NodeSection())
        plan = build_restore_plan(snapshot)

        assert render_stage(plan.stages[0], snapshot.get("node")) == [":"]

    def test_empty_homebrew(self):
        """Test an empty Homebrew section installs nothing."""
        snapshot = Snapshot()
        snapshot.set("homebrew", HomebrewSection())

        lines = render_stage(build_restore_plan(snapshot).stages[0], snapshot.get("homebrew"))

        assert lines == ["echo 'Homebrew: nothing to install'"]

    def test_values_are_quoted(self):
        """Test untrusted values cannot break out of the command."""
        snapshot = Snapshot()
        snapshot.set("homebrew", HomebrewSection(formulae=[Package(name="evil; rm -rf /")]))

        script = generate_restore_script(build_restore_plan(snapshot))

        assert "brew install 'evil; rm -rf /'" in script

    def test_home_path(self):
        """Test home-relative path expressions."""
        assert home_path(".zshrc") == '"$HOME"/.zshrc'
        assert home_path("~/Code") == '"$HOME"/Code'
        assert home_path("/etc/hosts") == "/etc/hosts"


class TestRestoreExecutor:
    """Tests for RestoreExecutor."""

    def test_execute_success(self, sample_snapshot, tmp_path):
        """Test the script runs from the bundle dir and is removed afterwards."""
        plan = build_restore_plan(sample_snapshot)
        seen = {}

        def fake_run(cmd, cwd, env, check):
            script = Path(cmd[1])
            seen["cmd"] = cmd
            seen["exists"] = script.exists()
            seen["content"] = script.read_text()
            seen["cwd"] = cwd
            seen["bundle"] = env["MACHINIST_BUNDLE_DIR"]
            return subprocess.CompletedProcess(cmd, 0)

        with patch("machinist.actions.executor.subprocess.run", side_effect=fake_run):
            result = RestoreExecutor().execute(plan, workdir=tmp_path)

        assert result.success is True
        assert result.return_code == 0
        assert seen["cmd"][0] == "bash"
        assert seen["exists"] is True
        assert "STAGE_TOTAL=4" in seen["content"]
        assert seen["cwd"] == tmp_path
        assert seen["bundle"] == str(tmp_path.resolve())
        assert not result.script_path.exists()

    def test_execute_failure(self, sample_snapshot, tmp_path):
        """Test a non-zero exit is reported as failure."""
        plan = build_restore_plan(sample_snapshot)

        with patch(
            "machinist.actions.executor.subprocess.run",
            return_value=subprocess.CompletedProcess(["bash"], 1),
        ):
            result = RestoreExecutor().execute(plan, workdir=tmp_path)

        assert result.success is False
        assert result.return_code == 1
        assert not result.script_path.exists()

    def test_script_removed_on_error(self, sample_snapshot, tmp_path):
        """Test the temporary script is removed when the shell cannot start."""
        plan = build_restore_plan(sample_snapshot)
        paths = []

        def fake_run(cmd, **kwargs):
            paths.append(Path(cmd[1]))
            raise FileNotFoundError(cmd[0])

        with patch("machinist.actions.executor.subprocess.run", side_effect=fake_run):
            with pytest.raises(OSError):
                RestoreExecutor(shell="no-such-shell").execute(plan, workdir=tmp_path)

        assert paths and not paths[0].exists()

    def test_logfile_passed(self, sample_snapshot, tmp_path):
        """Test an explicit log file is handed to the script."""
        plan = build_restore_plan(sample_snapshot)
        logfile = tmp_path / "restore.log"

        with patch(
            "machinist.actions.executor.subprocess.run",
            return_value=subprocess.CompletedProcess(["bash"], 0),
        ) as mock_run:
            RestoreExecutor(logfile=logfile).execute(plan, workdir=tmp_path)

        assert mock_run.call_args.kwargs["env"]["MACHINIST_LOGFILE"] == str(logfile)

    def test_bundled_script_preferred(self, sample_snapshot, tmp_path):
        """Test a bundle's own install.command runs when every section is restored."""
        bundled = tmp_path / "install.command"
        bundled.write_text("#!/bin/bash\nexit 0\n")
        plan = build_restore_plan(sample_snapshot)

        with patch(
            "machinist.actions.executor.subprocess.run",
            return_value=subprocess.CompletedProcess(["bash"], 0),
        ) as mock_run:
            result = RestoreExecutor().execute(plan, workdir=tmp_path)

        assert mock_run.call_args.args[0] == ["bash", str(bundled)]
        assert result.pregenerated is True
        assert bundled.exists()

    def test_filtered_plan_generates_script(self, sample_snapshot, tmp_path):
        """Test --only/--skip plans never run the bundle's full script."""
        (tmp_path / "install.command").write_text("#!/bin/bash\nexit 0\n")
        plan = build_restore_plan(sample_snapshot, only=["shell"])

        with patch(
            "machinist.actions.executor.subprocess.run",
            return_value=subprocess.CompletedProcess(["bash"], 0),
        ) as mock_run:
            result = RestoreExecutor().execute(plan, workdir=tmp_path)

        assert mock_run.call_args.args[0][1] != str(tmp_path / "install.command")
        assert result.pregenerated is False
        assert not result.script_path.exists()


class TestBundle:
    """Tests for prepare_bundle_dir."""

    def test_layout(self, sample_snapshot, tmp_path):
        """Test manifest, executable script and captured files are written."""
        home = tmp_path / "home"
        home.mkdir()
        (home / ".zshrc").write_text("alias ll='ls -l'\n")
        bundle = tmp_path / "bundle"

        result = prepare_bundle_dir(sample_snapshot, bundle, home=home)

        assert result.manifest_path == bundle / "manifest.toml"
        assert read_manifest(result.manifest_path) == sample_snapshot
        assert result.script_path == bundle / "install.command"
        assert result.script_path.stat().st_mode & 0o111
        assert "STAGE_TOTAL=4" in result.script_path.read_text()
        assert result.copied == ["configs/shell/.zshrc"]
        assert (bundle / "configs" / "shell" / ".zshrc").read_text() == "alias ll='ls -l'\n"

    def test_missing_source_skipped(self, sample_snapshot, tmp_path):
        """Test a file deleted since the scan is reported, not fatal."""
        result = prepare_bundle_dir(sample_snapshot, tmp_path / "bundle", home=tmp_path / "empty")

        assert result.copied == []
        assert result.missing == [".zshrc"]

    def test_custom_script_name(self, tmp_path):
        """Test the script name follows the restore settings."""
        result = prepare_bundle_dir(Snapshot(), tmp_path / "bundle", home=tmp_path, script_name="restore.sh")

        assert result.script_path.name == "restore.sh"
        assert result.script_path.is_file()

    def test_collects_from_every_section(self, tmp_path):
        """Test files of generic sections are bundled too."""
        (tmp_path / ".gitconfig").write_text("[user]\n")
        snapshot = Snapshot()
        gitconfig = ConfigFile(source=".gitconfig", bundle_path="configs/git/.gitconfig")
        snapshot.set("git", GitSection(config_files=[gitconfig]))
        snapshot.set("docker", DockerSection())

        assert [f.source for f in snapshot_config_files(snapshot)] == [".gitconfig"]
        result = prepare_bundle_dir(snapshot, tmp_path / "bundle", home=tmp_path)
        assert result.copied == ["configs/git/.gitconfig"]

    def test_escaping_bundle_path_rejected(self, tmp_path):
        """Test a bundle path cannot point outside the bundle."""
        (tmp_path / ".zshrc").write_text("")
        snapshot = Snapshot()
        snapshot.set("shell", ShellSection(config_files=[ConfigFile(source=".zshrc", bundle_path="../.zshrc")]))

        with pytest.raises(BundleError, match="inside the bundle"):
            prepare_bundle_dir(snapshot, tmp_path / "bundle", home=tmp_path)

    def test_default_bundle_dir(self, tmp_path):
        """Test default bundle names are derived from the host name."""
        path = default_bundle_dir(tmp_path, "dev box.local")

        assert path.parent == tmp_path
        assert path.name.startswith("devboxlocal_")


requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


def run_script(script: str, tmp_path: Path, home: Path) -> subprocess.CompletedProcess:
    path = tmp_path / "restore.sh"
    path.write_text(script)
    env = dict(
        os.environ,
        HOME=str(home),
        MACHINIST_LOGFILE=str(tmp_path / "restore.log"),
        MACHINIST_BUNDLE_DIR=str(tmp_path),
        GIT_TERMINAL_PROMPT="0",
    )
    return subprocess.run(["bash", str(path)], env=env, capture_output=True, text=True, check=False)


@requires_bash
class TestRestoreScriptExecution:
    """Tests that run generated scripts with bash."""

    def _failing_then_folders(self, tmp_path: Path) -> Snapshot:
        snapshot = Snapshot()
        snapshot.set(
            "git_repos",
            GitReposSection(repositories=[Repository(path="Code/app", remote=str(tmp_path / "missing.git"))]),
        )
        snapshot.set("folders", FoldersSection(structure=["Code/work", "Documents/notes"]))
        return snapshot

    def test_failed_stage_does_not_stop_restore(self, tmp_path):
        """Test a failing stage is counted and later stages still run."""
        home = tmp_path / "home"
        home.mkdir()
        script = generate_restore_script(build_restore_plan(self._failing_then_folders(tmp_path)))

        completed = run_script(script, tmp_path, home)

        assert completed.returncode == 1
        assert "1 stages succeeded, 1 stages failed" in completed.stdout
        assert (home / "Code" / "work").is_dir()
        assert (home / "Documents" / "notes").is_dir()
        assert "1 stages failed" in (tmp_path / "restore.log").read_text()

    def test_rerun_gives_same_result(self, tmp_path):
        """Test running the same script twice is safe and reports the same outcome."""
        home = tmp_path / "home"
        home.mkdir()
        script = generate_restore_script(build_restore_plan(self._failing_then_folders(tmp_path)))

        first = run_script(script, tmp_path, home)
        second = run_script(script, tmp_path, home)

        assert first.returncode == second.returncode == 1
        assert "1 stages succeeded, 1 stages failed" in second.stdout
        assert (home / "Code" / "work").is_dir()

    def test_empty_plan_succeeds(self, tmp_path):
        """Test a plan with no stages runs to a clean summary."""
        script = generate_restore_script(build_restore_plan(Snapshot()))

        completed = run_script(script, tmp_path, tmp_path)

        assert completed.returncode == 0
        assert "0 stages succeeded, 0 stages failed" in completed.stdout

    def test_scan_bundle_restore(self, tmp_path, monkeypatch):
        """Test a captured dotfile travels from one home to another."""
        old_home = tmp_path / "old"
        old_home.mkdir()
        (old_home / ".zshrc").write_text("export PATH=$HOME/bin:$PATH\n")
        new_home = tmp_path / "new"
        new_home.mkdir()
        bundle = tmp_path / "bundle"

        registry = ProbeRegistry()
        registry.register(ShellProbe(home=old_home, environ={}))
        snapshot, errors = registry.scan_all()
        assert errors == []
        prepare_bundle_dir(snapshot, bundle, home=old_home)

        monkeypatch.setenv("HOME", str(new_home))
        plan = build_restore_plan(read_manifest(bundle / "manifest.toml"))
        executor = RestoreExecutor(logfile=tmp_path / "restore.log")
        result = executor.execute(plan, workdir=bundle)

        assert result.success is True
        assert result.pregenerated is True
        assert (new_home / ".zshrc").read_text() == "export PATH=$HOME/bin:$PATH\n"
        log = (tmp_path / "restore.log").read_text()
        assert "bundled file not found" not in log
        assert "1 stages succeeded, 0 stages failed" in log

        second = executor.execute(plan, workdir=bundle)
        assert second.success is True
