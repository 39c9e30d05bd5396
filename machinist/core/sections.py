"""Section types and the section table.

Each section is a dataclass describing one independent aspect of a
machine. SECTION_TABLE lists every section in declaration order together
with its manifest key, display name and merge strategy. Stage order,
manifest layout, merge and diff all iterate this table; adding a section
means adding a dataclass and one table row.
"""

from dataclasses import dataclass, field
from enum import Enum

from .models import (
    AsdfPlugin,
    ConfigFile,
    DNSConfig,
    DockConfig,
    EnvFile,
    FinderConfig,
    Font,
    HostEntry,
    InstalledApp,
    JetBrainsIDE,
    KeyboardConfig,
    MacDefault,
    MenuBarConfig,
    MissionControlConfig,
    Package,
    Repository,
    ScreenshotsConfig,
    ServiceEntry,
    SpotlightConfig,
    TrackpadConfig,
)


def identity_list(key: str | None = None):
    """List field whose entries are de-duplicated by `key` when merged.

    With key=None the entry value itself is the identity (plain strings).
    """
    return field(default_factory=list, metadata={"identity": key})


# ---------------------------------------------------------------------------
# Package managers and runtimes
# ---------------------------------------------------------------------------


@dataclass
class HomebrewSection:
    """Homebrew taps, formulae, casks and services."""

    taps: list[str] = identity_list()
    formulae: list[Package] = identity_list("name")
    casks: list[Package] = identity_list("name")
    services: list[ServiceEntry] = identity_list("name")


@dataclass
class NodeSection:
    manager: str = ""
    versions: list[str] = field(default_factory=list)
    default_version: str = ""
    global_packages: list[Package] = field(default_factory=list)


@dataclass
class PythonSection:
    manager: str = ""
    versions: list[str] = field(default_factory=list)
    default_version: str = ""
    global_packages: list[Package] = field(default_factory=list)


@dataclass
class RustSection:
    toolchains: list[str] = field(default_factory=list)
    default_toolchain: str = ""
    components: list[str] = field(default_factory=list)
    cargo_packages: list[Package] = field(default_factory=list)


@dataclass
class JavaSection:
    manager: str = ""
    versions: list[str] = field(default_factory=list)
    default_version: str = ""
    java_home: str = ""


@dataclass
class FlutterSection:
    channel: str = ""
    version: str = ""
    dart_global_packages: list[str] = field(default_factory=list)


@dataclass
class GoSection:
    version: str = ""
    global_packages: list[Package] = field(default_factory=list)


@dataclass
class AsdfSection:
    plugins: list[AsdfPlugin] = field(default_factory=list)
    tool_versions_file: str = ""


# ---------------------------------------------------------------------------
# Shell, terminal and git
# ---------------------------------------------------------------------------


@dataclass
class ShellSection:
    """Default shell, framework, prompt and shell config files."""

    default_shell: str = ""
    framework: str = ""
    prompt: str = ""
    config_files: list[ConfigFile] = field(default_factory=list)
    oh_my_zsh_custom_plugins: list[str] = field(default_factory=list)


@dataclass
class TerminalSection:
    app: str = ""
    config_files: list[ConfigFile] = field(default_factory=list)


@dataclass
class TmuxSection:
    config_files: list[ConfigFile] = field(default_factory=list)
    tpm_plugins: list[str] = field(default_factory=list)


@dataclass
class GitSection:
    config_files: list[ConfigFile] = field(default_factory=list)
    signing_method: str = ""
    template_dir: str = ""
    credential_helper: str = ""


@dataclass
class GitHubCLISection:
    config_dir: str = ""
    extensions: list[str] = field(default_factory=list)


@dataclass
class GitReposSection:
    search_paths: list[str] = field(default_factory=list)
    repositories: list[Repository] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Editors
# ---------------------------------------------------------------------------


@dataclass
class VSCodeSection:
    extensions: list[str] = field(default_factory=list)
    config_files: list[ConfigFile] = field(default_factory=list)
    snippets_dir: str = ""


@dataclass
class CursorSection:
    extensions: list[str] = field(default_factory=list)
    config_files: list[ConfigFile] = field(default_factory=list)


@dataclass
class NeovimSection:
    config_dir: str = ""
    plugin_manager: str = ""


@dataclass
class JetBrainsSection:
    ides: list[JetBrainsIDE] = field(default_factory=list)


@dataclass
class XcodeSection:
    simulators: list[str] = field(default_factory=list)
    config_files: list[ConfigFile] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Containers and cloud tooling
# ---------------------------------------------------------------------------


@dataclass
class DockerSection:
    config_file: str = ""
    frequently_used_images: list[str] = field(default_factory=list)
    runtime: str = ""


@dataclass
class AWSSection:
    config_file: str = ""
    profiles: list[str] = field(default_factory=list)


@dataclass
class KubernetesSection:
    config_file: str = ""
    contexts: list[str] = field(default_factory=list)


@dataclass
class TerraformSection:
    config_file: str = ""


@dataclass
class VercelSection:
    config_dir: str = ""


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


@dataclass
class MacOSDefaultsSection:
    dock: DockConfig | None = None
    finder: FinderConfig | None = None
    keyboard: KeyboardConfig | None = None
    trackpad: TrackpadConfig | None = None
    mission_control: MissionControlConfig | None = None
    spotlight: SpotlightConfig | None = None
    screenshots: ScreenshotsConfig | None = None
    menu_bar: MenuBarConfig | None = None
    defaults: list[MacDefault] = field(default_factory=list)


@dataclass
class LocaleSection:
    language: str = ""
    region: str = ""
    timezone: str = ""
    computer_name: str = ""
    local_hostname: str = ""


@dataclass
class LoginItemsSection:
    apps: list[str] = field(default_factory=list)


@dataclass
class HostsFileSection:
    custom_entries: list[HostEntry] = field(default_factory=list)


@dataclass
class AppsSection:
    app_store: list[InstalledApp] = field(default_factory=list)


@dataclass
class RaycastSection:
    export_file: str = ""


@dataclass
class KarabinerSection:
    config_dir: str = ""


@dataclass
class RectangleSection:
    config_file: str = ""


# ---------------------------------------------------------------------------
# Secrets and personal files
# ---------------------------------------------------------------------------


@dataclass
class SSHSection:
    encrypted: bool = False
    config_file: str = ""
    keys: list[str] = field(default_factory=list)
    known_hosts: str = ""


@dataclass
class GPGSection:
    encrypted: bool = False
    keys: list[str] = field(default_factory=list)
    config_files: list[ConfigFile] = field(default_factory=list)


@dataclass
class XDGConfigSection:
    auto_detected: list[str] = field(default_factory=list)
    custom_paths: list[str] = field(default_factory=list)
    config_dir: str = ""


@dataclass
class FoldersSection:
    structure: list[str] = field(default_factory=list)


@dataclass
class FontsSection:
    custom_fonts: list[Font] = field(default_factory=list)
    homebrew_fonts: list[str] = field(default_factory=list)


@dataclass
class EnvFilesSection:
    encrypted: bool = False
    files: list[EnvFile] = field(default_factory=list)


@dataclass
class CrontabSection:
    entries: list[str] = field(default_factory=list)


@dataclass
class LaunchAgentsSection:
    plists: list[ConfigFile] = field(default_factory=list)


@dataclass
class NetworkSection:
    preferred_wifi: list[str] = field(default_factory=list)
    dns: DNSConfig | None = None
    vpn_configs: list[ConfigFile] = field(default_factory=list)


@dataclass
class BrowserSection:
    default: str = ""
    extensions_checklist: str = ""


@dataclass
class AIToolsSection:
    claude_code_config: str = ""
    ollama_models: list[str] = field(default_factory=list)


@dataclass
class APIToolsSection:
    config_files: list[ConfigFile] = field(default_factory=list)
    mkcert: bool = False


@dataclass
class DatabasesSection:
    config_files: list[ConfigFile] = field(default_factory=list)


@dataclass
class RegistriesSection:
    config_files: list[ConfigFile] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Section table
# ---------------------------------------------------------------------------


class MergeStrategy(Enum):
    """How a section is combined when composing two snapshots.

    Strategies:
        REPLACE: Override section replaces the base section wholesale
        DEDUP_CONCAT: Lists are concatenated, de-duplicated by identity
    """

    REPLACE = "replace"
    DEDUP_CONCAT = "dedup_concat"


@dataclass(frozen=True)
class SectionSpec:
    """One row of the section table.

    Attributes:
        key: Stable manifest key and stage identifier
        section_type: Dataclass holding the section contents
        display_name: Human-readable name used in restore output
        merge_strategy: How the section merges with another snapshot
    """

    key: str
    section_type: type
    display_name: str
    merge_strategy: MergeStrategy = MergeStrategy.REPLACE


SECTION_TABLE: tuple[SectionSpec, ...] = (
    SectionSpec("homebrew", HomebrewSection, "Homebrew", MergeStrategy.DEDUP_CONCAT),
    SectionSpec("node", NodeSection, "Node.js"),
    SectionSpec("python", PythonSection, "Python"),
    SectionSpec("rust", RustSection, "Rust"),
    SectionSpec("java", JavaSection, "Java"),
    SectionSpec("flutter", FlutterSection, "Flutter"),
    SectionSpec("go", GoSection, "Go"),
    SectionSpec("asdf", AsdfSection, "asdf"),
    SectionSpec("shell", ShellSection, "Shell Configuration"),
    SectionSpec("terminal", TerminalSection, "Terminal"),
    SectionSpec("tmux", TmuxSection, "tmux"),
    SectionSpec("git", GitSection, "Git Configuration"),
    SectionSpec("github_cli", GitHubCLISection, "GitHub CLI"),
    SectionSpec("git_repos", GitReposSection, "Git Repositories"),
    SectionSpec("vscode", VSCodeSection, "VS Code"),
    SectionSpec("cursor", CursorSection, "Cursor"),
    SectionSpec("neovim", NeovimSection, "Neovim"),
    SectionSpec("jetbrains", JetBrainsSection, "JetBrains IDEs"),
    SectionSpec("xcode", XcodeSection, "Xcode"),
    SectionSpec("docker", DockerSection, "Docker"),
    SectionSpec("aws", AWSSection, "AWS CLI"),
    SectionSpec("kubernetes", KubernetesSection, "Kubernetes"),
    SectionSpec("terraform", TerraformSection, "Terraform"),
    SectionSpec("vercel", VercelSection, "Vercel"),
    SectionSpec("macos_defaults", MacOSDefaultsSection, "macOS Defaults"),
    SectionSpec("locale", LocaleSection, "Locale"),
    SectionSpec("login_items", LoginItemsSection, "Login Items"),
    SectionSpec("hosts_file", HostsFileSection, "Hosts File"),
    SectionSpec("apps", AppsSection, "App Store Apps"),
    SectionSpec("raycast", RaycastSection, "Raycast"),
    SectionSpec("karabiner", KarabinerSection, "Karabiner-Elements"),
    SectionSpec("rectangle", RectangleSection, "Rectangle"),
    SectionSpec("ssh", SSHSection, "SSH"),
    SectionSpec("gpg", GPGSection, "GPG"),
    SectionSpec("xdg_config", XDGConfigSection, "XDG Config"),
    SectionSpec("folders", FoldersSection, "Folders"),
    SectionSpec("fonts", FontsSection, "Fonts"),
    SectionSpec("env_files", EnvFilesSection, "Environment Files"),
    SectionSpec("crontab", CrontabSection, "Crontab"),
    SectionSpec("launchagents", LaunchAgentsSection, "Launch Agents"),
    SectionSpec("network", NetworkSection, "Network"),
    SectionSpec("browser", BrowserSection, "Browser"),
    SectionSpec("ai_tools", AIToolsSection, "AI Tools"),
    SectionSpec("api_tools", APIToolsSection, "API Tools"),
    SectionSpec("databases", DatabasesSection, "Databases"),
    SectionSpec("registries", RegistriesSection, "Package Registries"),
)

SECTIONS_BY_KEY: dict[str, SectionSpec] = {spec.key: spec for spec in SECTION_TABLE}

SECTION_KEYS: tuple[str, ...] = tuple(spec.key for spec in SECTION_TABLE)


def get_section_spec(key: str) -> SectionSpec:
    """Look up a section by manifest key.

    Raises:
        KeyError: If the key is not a known section.
    """
    try:
        return SECTIONS_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown section: {key}") from None


def is_section_key(key: str) -> bool:
    """Check whether a key names a known section."""
    return key in SECTIONS_BY_KEY
