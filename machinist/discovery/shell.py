"""Shell probe - dotfiles, framework and prompt detection."""

import logging
import os
from pathlib import Path

from machinist.core.sections import ShellSection

from .base import BaseProbe, ProbeResult, ScanContext
from .files import capture_config_file

logger = logging.getLogger("machinist.discovery.shell")

SHELL_CONFIG_FILES = [
    ".zshrc",
    ".zshenv",
    ".zprofile",
    ".zlogin",
    ".zlogout",
    ".bashrc",
    ".bash_profile",
    ".bash_login",
    ".bash_logout",
    ".profile",
    ".inputrc",
]

BUNDLE_DIR = "configs/shell"

# Checked in order; first match wins
FRAMEWORK_DIRS = [
    (".oh-my-zsh", "oh-my-zsh"),
    (".oh-my-bash", "oh-my-bash"),
    (".zprezto", "prezto"),
]

PROMPT_FILES = [
    (".config/starship.toml", "starship"),
    (".p10k.zsh", "p10k"),
]


class ShellProbe(BaseProbe):
    """Probe for shell configuration.

    Captures known dotfiles with their content hash, the login shell
    from $SHELL, an installed framework and the prompt tool.
    """

    def __init__(self, home: Path | None = None, environ: dict[str, str] | None = None) -> None:
        self.home = home or Path.home()
        self.environ = environ if environ is not None else os.environ

    def get_name(self) -> str:
        return "shell"

    def get_description(self) -> str:
        return "Scans shell configuration files and frameworks"

    def get_category(self) -> str:
        return "shell"

    def get_section_key(self) -> str:
        return "shell"

    def scan(self, ctx: ScanContext) -> ProbeResult:
        section = ShellSection(default_shell=self.environ.get("SHELL", ""))

        for name in SHELL_CONFIG_FILES:
            config_file = capture_config_file(self.home, name, BUNDLE_DIR)
            if config_file:
                section.config_files.append(config_file)

        for directory, framework in FRAMEWORK_DIRS:
            if (self.home / directory).is_dir():
                section.framework = framework
                break

        for relative, prompt in PROMPT_FILES:
            config_file = capture_config_file(self.home, relative, BUNDLE_DIR)
            if config_file:
                section.prompt = prompt
                section.config_files.append(config_file)
                break

        if section.framework == "oh-my-zsh":
            custom = self.home / ".oh-my-zsh" / "custom" / "plugins"
            if custom.is_dir():
                section.oh_my_zsh_custom_plugins = sorted(
                    p.name for p in custom.iterdir() if p.is_dir()
                )

        logger.debug(f"Captured {len(section.config_files)} shell config files")
        return self.result(section)
