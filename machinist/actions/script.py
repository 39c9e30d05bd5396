"""Restore script generation.

Turns a RestorePlan into a bash script. The script:
    - runs each stage in its own subshell and keeps going when one fails
    - counts passed and failed stages and reports elapsed time
    - warns when the source architecture differs from this machine's
    - only performs actions that are safe to repeat
    - is complete and valid even when the plan has no stages
"""

import dataclasses
import logging
import shlex
from collections.abc import Callable
from typing import Any

from machinist.core.models import ConfigFile
from machinist.core.sections import (
    AppsSection,
    CrontabSection,
    CursorSection,
    FoldersSection,
    FontsSection,
    GitReposSection,
    GoSection,
    HomebrewSection,
    HostsFileSection,
    MacOSDefaultsSection,
    NodeSection,
    PythonSection,
    RustSection,
    ShellSection,
    VSCodeSection,
)

from .planner import RestorePlan, Stage

logger = logging.getLogger("machinist.actions.script")

BREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
OH_MY_ZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
RUSTUP_URL = "https://sh.rustup.rs"

_q = shlex.quote


def _single_line(value: str) -> str:
    return " ".join(str(value).split())


def home_path(path: str) -> str:
    """Shell expression for a path recorded relative to the home directory."""
    if path.startswith("/"):
        return _q(path)
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        path = path[2:]
    return f'"$HOME"/{_q(path)}'


def bundle_path(path: str) -> str:
    """Shell expression for a path inside the restore bundle."""
    return f'"$BUNDLE_DIR"/{_q(path)}'


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def restore_config_file(config_file: ConfigFile) -> list[str]:
    """Copy one bundled file into place unless it is already identical."""
    if config_file.encrypted:
        return [
            f"echo {_q('WARNING: skipping encrypted file ' + config_file.source + ' (decrypt it first)')}"
        ]

    src = bundle_path(config_file.bundle_path)
    dest = home_path(config_file.source)
    return [
        f"if [ -f {src} ]; then",
        f'    mkdir -p "$(dirname {dest})"',
        f"    cmp -s {src} {dest} || cp {src} {dest}",
        "else",
        f"    echo {_q('WARNING: bundled file not found: ' + config_file.bundle_path)}",
        "fi",
    ]


def restore_config_files(config_files: list[ConfigFile]) -> list[str]:
    lines: list[str] = []
    for config_file in config_files:
        lines.extend(restore_config_file(config_file))
    return lines


def brew_formula(name: str) -> str:
    return f"brew list {_q(name)} &>/dev/null || brew install {_q(name)}"


def brew_cask(name: str) -> str:
    return f"brew list --cask {_q(name)} &>/dev/null || brew install --cask {_q(name)}"


def _ensure_brew() -> str:
    return f'command -v brew &>/dev/null || /bin/bash -c "$(curl -fsSL {BREW_INSTALL_URL})"'


def collect_config_files(section: Any) -> list[ConfigFile]:
    """All ConfigFile records held directly by a section."""
    found: list[ConfigFile] = []
    for f in dataclasses.fields(section):
        value = getattr(section, f.name)
        if isinstance(value, list):
            found.extend(v for v in value if isinstance(v, ConfigFile))
    return found


# ---------------------------------------------------------------------------
# Section renderers
# ---------------------------------------------------------------------------


def render_homebrew(section: HomebrewSection) -> list[str]:
    if not (section.taps or section.formulae or section.casks or section.services):
        return ["echo 'Homebrew: nothing to install'"]

    lines = [_ensure_brew()]
    for tap in section.taps:
        lines.append(f"brew tap | grep -qxF {_q(tap)} || brew tap {_q(tap)}")
    for package in section.formulae:
        lines.append(brew_formula(package.name))
    for package in section.casks:
        lines.append(brew_cask(package.name))
    for service in section.services:
        if service.status != "started":
            continue
        name = _q(service.name)
        lines.append(
            f"brew services list | grep -qE {_q('^' + service.name + ' +started')} "
            f"|| brew services start {name}"
        )
    return lines


def render_shell(section: ShellSection) -> list[str]:
    lines = restore_config_files(section.config_files)

    if section.framework == "oh-my-zsh":
        lines.append(
            f'[ -d "$HOME/.oh-my-zsh" ] || sh -c "$(curl -fsSL {OH_MY_ZSH_INSTALL_URL})" "" --unattended'
        )
    elif section.framework:
        lines.append(f"echo {_q('Install shell framework manually: ' + section.framework)}")

    if section.prompt == "starship":
        lines.append("command -v starship &>/dev/null || brew install starship")

    if section.default_shell:
        shell = _q(section.default_shell)
        lines.append(f'[ "$SHELL" = {shell} ] || chsh -s {shell}')
    return lines


def render_git_repos(section: GitReposSection) -> list[str]:
    lines: list[str] = []
    for repo in section.repositories:
        path = home_path(repo.path)
        if not repo.remote:
            lines.append(f"echo {_q('Skipping ' + repo.path + ': no remote recorded')}")
            continue
        branch = f" --branch {_q(repo.branch)}" if repo.branch else ""
        depth = " --depth 1" if repo.shallow else ""
        lines.append(f'mkdir -p "$(dirname {path})"')
        lines.append(f"[ -d {path} ] || git clone{branch}{depth} {_q(repo.remote)} {path}")
    return lines


def render_crontab(section: CrontabSection) -> list[str]:
    lines: list[str] = []
    for entry in section.entries:
        entry = _q(entry)
        lines.append(
            f"crontab -l 2>/dev/null | grep -qxF -- {entry} "
            f"|| {{ crontab -l 2>/dev/null; echo {entry}; }} | crontab -"
        )
    return lines


def render_node(section: NodeSection) -> list[str]:
    lines: list[str] = []
    manager = section.manager
    if manager == "fnm":
        lines.append("command -v fnm &>/dev/null || brew install fnm")
        lines.append('eval "$(fnm env)"')
        for version in section.versions:
            lines.append(f"fnm list | grep -qF {_q(version)} || fnm install {_q(version)}")
        if section.default_version:
            lines.append(f"fnm default {_q(section.default_version)}")
    elif manager == "nvm":
        lines.append('export NVM_DIR="$HOME/.nvm"')
        lines.append('if [ -s "$NVM_DIR/nvm.sh" ]; then . "$NVM_DIR/nvm.sh"; fi')
        for version in section.versions:
            lines.append(f"nvm ls {_q(version)} &>/dev/null || nvm install {_q(version)}")
        if section.default_version:
            lines.append(f"nvm alias default {_q(section.default_version)}")
    elif manager:
        lines.append(f"echo {_q('Install Node.js versions with ' + manager + ' manually')}")

    for package in section.global_packages:
        name = _q(package.name)
        lines.append(f"npm ls -g {name} &>/dev/null || npm install -g {name}")
    return lines


def render_python(section: PythonSection) -> list[str]:
    lines: list[str] = []
    if section.manager == "pyenv":
        lines.append("command -v pyenv &>/dev/null || brew install pyenv")
        for version in section.versions:
            lines.append(
                f"pyenv versions --bare | grep -qxF {_q(version)} || pyenv install {_q(version)}"
            )
        if section.default_version:
            lines.append(f"pyenv global {_q(section.default_version)}")
    elif section.manager == "uv":
        lines.append("command -v uv &>/dev/null || brew install uv")
        for version in section.versions:
            lines.append(f"uv python install {_q(version)}")
    elif section.manager:
        lines.append(f"echo {_q('Install Python versions with ' + section.manager + ' manually')}")

    for package in section.global_packages:
        name = _q(package.name)
        lines.append(f"pipx list --short 2>/dev/null | grep -q ^{name} || pipx install {name}")
    return lines


def render_rust(section: RustSection) -> list[str]:
    lines = [f"command -v rustup &>/dev/null || curl --proto '=https' -sSf {RUSTUP_URL} | sh -s -- -y"]
    lines.append('if [ -f "$HOME/.cargo/env" ]; then . "$HOME/.cargo/env"; fi')
    for toolchain in section.toolchains:
        lines.append(
            f"rustup toolchain list | grep -q ^{_q(toolchain)} || rustup toolchain install {_q(toolchain)}"
        )
    if section.default_toolchain:
        lines.append(f"rustup default {_q(section.default_toolchain)}")
    for component in section.components:
        lines.append(f"rustup component add {_q(component)}")
    for package in section.cargo_packages:
        name = _q(package.name)
        lines.append(f"cargo install --list | grep -q {_q('^' + package.name + ' v')} || cargo install {name}")
    return lines


def render_go(section: GoSection) -> list[str]:
    lines = ["command -v go &>/dev/null || brew install go"]
    for package in section.global_packages:
        version = package.version or "latest"
        lines.append(f"go install {_q(package.name + '@' + version)}")
    return lines


def _render_editor(cli: str, extensions: list[str], config_files: list[ConfigFile]) -> list[str]:
    lines = restore_config_files(config_files)
    for extension in extensions:
        ext = _q(extension)
        lines.append(
            f"{cli} --list-extensions 2>/dev/null | grep -qixF {ext} || {cli} --install-extension {ext}"
        )
    return lines


def render_vscode(section: VSCodeSection) -> list[str]:
    return _render_editor("code", section.extensions, section.config_files)


def render_cursor(section: CursorSection) -> list[str]:
    return _render_editor("cursor", section.extensions, section.config_files)


def render_folders(section: FoldersSection) -> list[str]:
    return [f"mkdir -p {home_path(folder)}" for folder in section.structure]


def render_fonts(section: FontsSection) -> list[str]:
    lines = [brew_cask(name) for name in section.homebrew_fonts]
    for font in section.custom_fonts:
        src = bundle_path(font.bundle_path)
        dest = f'"$HOME/Library/Fonts"/{_q(font.name)}'
        lines.append('mkdir -p "$HOME/Library/Fonts"')
        lines.append(f"[ -f {dest} ] || cp {src} {dest}")
    return lines


def render_apps(section: AppsSection) -> list[str]:
    lines: list[str] = []
    store_apps = [app for app in section.app_store if app.id]
    if store_apps:
        lines.append("command -v mas &>/dev/null || brew install mas")
    for app in store_apps:
        lines.append(f"mas list | grep -q '^{app.id} ' || mas install {app.id}")
    for app in section.app_store:
        if not app.id:
            lines.append(f"echo {_q('Install manually: ' + app.name)}")
    return lines


def render_hosts_file(section: HostsFileSection) -> list[str]:
    lines: list[str] = []
    for entry in section.custom_entries:
        line = _q(f"{entry.ip} {' '.join(entry.hostnames)}")
        lines.append(f"grep -qxF {line} /etc/hosts || echo {line} | sudo tee -a /etc/hosts >/dev/null")
    return lines


DEFAULTS_TYPE_FLAGS = {
    "string": "-string",
    "bool": "-bool",
    "int": "-int",
    "integer": "-int",
    "float": "-float",
}


def _defaults_write(domain: str, key: str, flag: str, value: Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"defaults write {_q(domain)} {_q(key)} {flag} {_q(str(value))}"


def render_macos_defaults(section: MacOSDefaultsSection) -> list[str]:
    lines: list[str] = []
    restart: list[str] = []

    if section.dock:
        dock = section.dock
        lines.append(_defaults_write("com.apple.dock", "autohide", "-bool", dock.autohide))
        if dock.tilesize:
            lines.append(_defaults_write("com.apple.dock", "tilesize", "-int", dock.tilesize))
        if dock.orientation:
            lines.append(_defaults_write("com.apple.dock", "orientation", "-string", dock.orientation))
        if dock.minimize_effect:
            lines.append(_defaults_write("com.apple.dock", "mineffect", "-string", dock.minimize_effect))
        restart.append("Dock")

    if section.finder:
        finder = section.finder
        lines.append(_defaults_write("com.apple.finder", "AppleShowAllFiles", "-bool", finder.show_hidden))
        lines.append(_defaults_write("com.apple.finder", "ShowPathbar", "-bool", finder.show_path_bar))
        lines.append(_defaults_write("com.apple.finder", "ShowStatusBar", "-bool", finder.show_status_bar))
        restart.append("Finder")

    if section.keyboard:
        if section.keyboard.key_repeat:
            lines.append(_defaults_write("NSGlobalDomain", "KeyRepeat", "-int", section.keyboard.key_repeat))
        if section.keyboard.initial_key_repeat:
            lines.append(
                _defaults_write(
                    "NSGlobalDomain", "InitialKeyRepeat", "-int", section.keyboard.initial_key_repeat
                )
            )

    if section.screenshots:
        shots = section.screenshots
        if shots.path:
            lines.append(f"mkdir -p {home_path(shots.path)}")
            lines.append(_defaults_write("com.apple.screencapture", "location", "-string", shots.path))
        if shots.format:
            lines.append(_defaults_write("com.apple.screencapture", "type", "-string", shots.format))
        lines.append(
            _defaults_write("com.apple.screencapture", "disable-shadow", "-bool", shots.disable_shadow)
        )
        restart.append("SystemUIServer")

    for default in section.defaults:
        flag = DEFAULTS_TYPE_FLAGS.get(default.value_type, "-string")
        lines.append(_defaults_write(default.domain, default.key, flag, default.value))

    for app in restart:
        lines.append(f"killall {app} &>/dev/null || true")
    return lines


SectionRenderer = Callable[[Any], list[str]]

STAGE_RENDERERS: dict[str, SectionRenderer] = {
    "homebrew": render_homebrew,
    "node": render_node,
    "python": render_python,
    "rust": render_rust,
    "go": render_go,
    "shell": render_shell,
    "git_repos": render_git_repos,
    "vscode": render_vscode,
    "cursor": render_cursor,
    "macos_defaults": render_macos_defaults,
    "hosts_file": render_hosts_file,
    "apps": render_apps,
    "folders": render_folders,
    "fonts": render_fonts,
    "crontab": render_crontab,
}


def render_generic(stage: Stage, section: Any) -> list[str]:
    """Restore a section's config files, or ask for a manual review."""
    config_files = collect_config_files(section)
    if config_files:
        return restore_config_files(config_files)
    return [f"echo {_q(f'Review {stage.title} settings manually (manifest section [{stage.key}])')}"]


def render_stage(stage: Stage, section: Any) -> list[str]:
    """Body lines for one stage function."""
    renderer = STAGE_RENDERERS.get(stage.key)
    lines = renderer(section) if renderer else render_generic(stage, section)
    return lines or [":"]


# ---------------------------------------------------------------------------
# Script assembly
# ---------------------------------------------------------------------------

HEADER = """\
#!/bin/bash
# machinist restore script
# Source host: {hostname}
# Source OS:   {os_version}
# Source arch: {arch}
# Created:     {created_at}
#
# Safe to run more than once: every action checks before it changes anything.
set -uo pipefail

BUNDLE_DIR="${{MACHINIST_BUNDLE_DIR:-$(cd "$(dirname "${{BASH_SOURCE[0]}}")" && pwd)}}"
LOGFILE="${{MACHINIST_LOGFILE:-$HOME/.machinist/logs/restore-$(date +%Y%m%d-%H%M%S).log}}"
mkdir -p "$(dirname "$LOGFILE")"

log() {{
    echo "$@" | tee -a "$LOGFILE"
}}

START_TIME=$(date +%s)
STAGE_NUM=0
STAGE_TOTAL={total}
STAGE_PASS=0
STAGE_FAIL=0

run_stage() {{
    local title="$1"
    local fn="$2"
    STAGE_NUM=$((STAGE_NUM + 1))
    log ""
    log "[$STAGE_NUM/$STAGE_TOTAL] $title"
    ( set -e; "$fn" ) 2>&1 | tee -a "$LOGFILE"
    local status=${{PIPESTATUS[0]}}
    if [ "$status" -eq 0 ]; then
        STAGE_PASS=$((STAGE_PASS + 1))
        log "    ok: $title"
    else
        STAGE_FAIL=$((STAGE_FAIL + 1))
        log "    FAILED: $title (exit $status), continuing"
    fi
}}

SOURCE_ARCH={source_arch}
CURRENT_ARCH="$(uname -m)"
if [ -n "$SOURCE_ARCH" ] && [ "$SOURCE_ARCH" != "$CURRENT_ARCH" ]; then
    log "WARNING: Architecture mismatch: snapshot taken on $SOURCE_ARCH, this machine is $CURRENT_ARCH"
fi

log "machinist restore: $STAGE_TOTAL stages, log at $LOGFILE"
"""

FOOTER = """\
END_TIME=$(date +%s)
ELAPSED=$((END_TIME - START_TIME))
log ""
log "machinist restore completed in ${ELAPSED}s: $STAGE_PASS stages succeeded, $STAGE_FAIL stages failed"
if [ "$STAGE_FAIL" -gt 0 ]; then
    exit 1
fi
exit 0
"""


def stage_function_name(stage: Stage) -> str:
    return f"stage_{stage.key}"


def generate_restore_script(plan: RestorePlan) -> str:
    """Render the bash restore script for a plan.

    Only the plan's stages appear in the script; sections that are absent
    or filtered out leave no trace.
    """
    meta = plan.snapshot.meta
    parts = [
        HEADER.format(
            hostname=_single_line(meta.source_hostname or "unknown"),
            os_version=_single_line(meta.source_os_version or "unknown"),
            arch=_single_line(meta.source_arch or "unknown"),
            created_at=meta.created_at.isoformat(),
            total=plan.stage_count,
            source_arch=_q(meta.source_arch),
        )
    ]

    for stage in plan.stages:
        section = plan.snapshot.get(stage.key)
        body = "\n".join(f"    {line}" for line in render_stage(stage, section))
        parts.append(f"# {stage.label}\n{stage_function_name(stage)}() {{\n{body}\n}}\n")

    calls = [f"run_stage {_q(stage.title)} {stage_function_name(stage)}" for stage in plan.stages]
    if calls:
        parts.append("\n".join(calls) + "\n")

    parts.append(FOOTER)
    script = "\n".join(parts)
    logger.debug(f"Generated restore script with {plan.stage_count} stages")
    return script
