"""Tests for the bundled probes."""

import subprocess
from unittest.mock import patch

import pytest

from machinist.core.models import Package, ServiceEntry
from machinist.discovery.base import ScanContext
from machinist.discovery.command import CommandError, CommandRunner, split_lines
from machinist.discovery.crontab import CrontabProbe, parse_crontab
from machinist.discovery.files import capture_config_file, content_hash
from machinist.discovery.git_repos import GitReposProbe
from machinist.discovery.homebrew import HomebrewProbe, parse_formulae, parse_services
from machinist.discovery.shell import ShellProbe


class FakeRunner(CommandRunner):
    """Command runner returning canned output."""

    def __init__(self, outputs: dict[tuple[str, ...], str] | None = None, installed=None):
        super().__init__(timeout=5)
        self.outputs = outputs or {}
        self.installed = set(installed or [])
        self.calls: list[tuple[str, ...]] = []

    def run(self, name: str, *args: str) -> str:
        cmd = (name, *args)
        self.calls.append(cmd)
        if cmd not in self.outputs:
            raise CommandError(f"{' '.join(cmd)}: exit status 1")
        return self.outputs[cmd].strip()

    def is_installed(self, name: str) -> bool:
        return name in self.installed


class TestCommandRunner:
    """Tests for CommandRunner."""

    def test_run_returns_stdout(self):
        """Test trimmed stdout is returned."""
        completed = subprocess.CompletedProcess(["brew"], 0, stdout="  git\n", stderr="")
        with patch("machinist.discovery.command.subprocess.run", return_value=completed):
            assert CommandRunner().run("brew", "list") == "git"

    def test_nonzero_exit(self):
        """Test a failing command raises CommandError."""
        completed = subprocess.CompletedProcess(["crontab"], 1, stdout="", stderr="no crontab for user")
        with patch("machinist.discovery.command.subprocess.run", return_value=completed):
            with pytest.raises(CommandError, match="no crontab"):
                CommandRunner().run("crontab", "-l")

    def test_missing_command(self):
        """Test a missing executable raises CommandError."""
        with patch("machinist.discovery.command.subprocess.run", side_effect=FileNotFoundError("brew")):
            with pytest.raises(CommandError, match="not found"):
                CommandRunner().run("brew")

    def test_timeout(self):
        """Test a hung command raises CommandError."""
        with patch(
            "machinist.discovery.command.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["brew"], 5),
        ):
            with pytest.raises(CommandError, match="timed out"):
                CommandRunner(timeout=5).run("brew")

    def test_split_lines(self):
        """Test blank lines are dropped."""
        assert split_lines("a\n\n  \nb\n") == ["a", "b"]


class TestHomebrewProbe:
    """Tests for HomebrewProbe."""

    def test_parse_formulae(self):
        """Test name and version parsing."""
        assert parse_formulae(["git 2.44.0", "python@3.12 3.12.2 3.12.1", "jq"]) == [
            Package(name="git", version="2.44.0"),
            Package(name="python@3.12", version="3.12.2 3.12.1"),
            Package(name="jq"),
        ]

    def test_parse_services(self):
        """Test the header row is skipped."""
        lines = [
            "Name          Status  User File",
            "postgresql@16 started me   ~/Library/LaunchAgents/homebrew.mxcl.postgresql@16.plist",
            "redis         none",
        ]
        assert parse_services(lines) == [
            ServiceEntry(name="postgresql@16", status="started"),
            ServiceEntry(name="redis", status="none"),
        ]

    def test_not_installed(self):
        """Test no section when brew is missing."""
        probe = HomebrewProbe(FakeRunner())

        assert probe.scan(ScanContext()).section is None

    def test_scan(self):
        """Test a full scan with canned brew output."""
        runner = FakeRunner(
            {
                ("brew", "list", "--formula", "--versions"): "git 2.44.0\nripgrep 14.1.0\n",
                ("brew", "list", "--cask"): "iterm2\nvisual-studio-code\n",
                ("brew", "tap"): "homebrew/core\nhashicorp/tap\n",
                ("brew", "services", "list"): "Name Status User File\nredis started me x\n",
            },
            installed=["brew"],
        )

        section = HomebrewProbe(runner).scan(ScanContext()).section

        assert [p.name for p in section.formulae] == ["git", "ripgrep"]
        assert [p.name for p in section.casks] == ["iterm2", "visual-studio-code"]
        assert section.taps == ["homebrew/core", "hashicorp/tap"]
        assert section.services == [ServiceEntry(name="redis", status="started")]

    def test_command_failure_propagates(self):
        """Test a broken brew is a probe failure, not an empty section."""
        runner = FakeRunner(installed=["brew"])

        with pytest.raises(CommandError):
            HomebrewProbe(runner).scan(ScanContext())


class TestShellProbe:
    """Tests for ShellProbe."""

    def test_scan(self, tmp_path):
        """Test dotfiles, framework, prompt and plugins are detected."""
        (tmp_path / ".zshrc").write_text("export PATH=$HOME/bin:$PATH\n")
        (tmp_path / ".zprofile").write_text("eval \"$(/opt/homebrew/bin/brew shellenv)\"\n")
        (tmp_path / ".oh-my-zsh" / "custom" / "plugins" / "zsh-autosuggestions").mkdir(parents=True)
        (tmp_path / ".oh-my-zsh" / "custom" / "plugins" / "fzf-tab").mkdir(parents=True)
        (tmp_path / ".config").mkdir()
        (tmp_path / ".config" / "starship.toml").write_text("add_newline = false\n")

        probe = ShellProbe(home=tmp_path, environ={"SHELL": "/bin/zsh"})
        section = probe.scan(ScanContext()).section

        assert section.default_shell == "/bin/zsh"
        assert section.framework == "oh-my-zsh"
        assert section.prompt == "starship"
        assert section.oh_my_zsh_custom_plugins == ["fzf-tab", "zsh-autosuggestions"]
        sources = [f.source for f in section.config_files]
        assert sources == [".zshrc", ".zprofile", ".config/starship.toml"]
        assert section.config_files[0].bundle_path == "configs/shell/.zshrc"
        assert section.config_files[0].content_hash.startswith("sha256:")

    def test_empty_home(self, tmp_path):
        """Test a bare home still yields a (mostly empty) section."""
        section = ShellProbe(home=tmp_path, environ={}).scan(ScanContext()).section

        assert section.default_shell == ""
        assert section.framework == ""
        assert section.config_files == []

    def test_p10k_prompt(self, tmp_path):
        """Test powerlevel10k detection."""
        (tmp_path / ".p10k.zsh").write_text("# p10k\n")

        section = ShellProbe(home=tmp_path, environ={}).scan(ScanContext()).section

        assert section.prompt == "p10k"


class TestFiles:
    """Tests for file capture helpers."""

    def test_content_hash(self, tmp_path):
        """Test the hash format for a known input."""
        path = tmp_path / "empty"
        path.write_bytes(b"")

        assert content_hash(path) == (
            "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_capture_missing(self, tmp_path):
        """Test missing files are skipped."""
        assert capture_config_file(tmp_path, ".gitconfig", "configs/git") is None

    def test_capture_sensitive(self, tmp_path):
        """Test the sensitive flag is carried over."""
        (tmp_path / ".npmrc").write_text("//registry.npmjs.org/:_authToken=x\n")

        config_file = capture_config_file(tmp_path, ".npmrc", "configs/registries", sensitive=True)

        assert config_file.sensitive is True
        assert config_file.bundle_path == "configs/registries/.npmrc"


class TestGitReposProbe:
    """Tests for GitReposProbe."""

    def test_scan(self, tmp_path):
        """Test repositories are found and nested ones are not descended into."""
        code = tmp_path / "Code"
        (code / "alpha" / ".git").mkdir(parents=True)
        (code / "alpha" / "vendor" / "nested" / ".git").mkdir(parents=True)
        (code / "group" / "beta" / ".git").mkdir(parents=True)
        (code / "notes").mkdir()

        alpha, beta = str(code / "alpha"), str(code / "group" / "beta")
        runner = FakeRunner(
            {
                ("git", "-C", alpha, "remote", "get-url", "origin"): "git@github.com:me/alpha.git",
                ("git", "-C", alpha, "branch", "--show-current"): "main",
                ("git", "-C", beta, "branch", "--show-current"): "dev",
            },
            installed=["git"],
        )

        section = GitReposProbe([code, tmp_path / "missing"], runner).scan(ScanContext()).section

        assert section.search_paths == [str(code), str(tmp_path / "missing")]
        assert [r.path for r in section.repositories] == [alpha, beta]
        assert section.repositories[0].remote == "git@github.com:me/alpha.git"
        assert section.repositories[0].branch == "main"
        assert section.repositories[1].remote == ""
        assert section.repositories[1].branch == "dev"

    def test_git_not_installed(self, tmp_path):
        """Test no section without git."""
        probe = GitReposProbe([tmp_path], FakeRunner())

        assert probe.scan(ScanContext()).section is None

    def test_no_search_paths(self):
        """Test no section without search paths."""
        probe = GitReposProbe([], FakeRunner(installed=["git"]))

        assert probe.scan(ScanContext()).section is None


class TestCrontabProbe:
    """Tests for CrontabProbe."""

    def test_parse_crontab(self):
        """Test comments and blank lines are dropped."""
        output = "# m h dom mon dow command\n\n0 3 * * * backup\n  @reboot start-agent  \n"

        assert parse_crontab(output) == ["0 3 * * * backup", "@reboot start-agent"]

    def test_scan(self):
        """Test entries from crontab -l."""
        runner = FakeRunner({("crontab", "-l"): "0 3 * * * backup\n"}, installed=["crontab"])

        section = CrontabProbe(runner).scan(ScanContext()).section

        assert section.entries == ["0 3 * * * backup"]

    def test_no_crontab(self):
        """Test a user without a crontab yields no section."""
        runner = FakeRunner(installed=["crontab"])

        assert CrontabProbe(runner).scan(ScanContext()).section is None

    def test_availability(self):
        """Test the probe is unavailable without the crontab command."""
        assert CrontabProbe(FakeRunner()).is_available() is False
        assert CrontabProbe(FakeRunner(installed=["crontab"])).is_available() is True
