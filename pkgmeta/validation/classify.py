"""Rule-based triage of validation failures.

Classification looks only at the identifier and source; it never queries a
registry.
"""

from pkgmeta.models import PackageValidationError

# Proprietary software or packages shipped only from vendor repos / PPAs
KNOWN_THIRD_PARTY = frozenset(
    {
        "android-studio",
        "anydesk",
        "discord",
        "dropbox",
        "zoom",
        "slack-desktop",
        "slack",
        "spotify-client",
        "spotify",
        "signal-desktop",
        "signal",
        "brave-browser",
        "brave",
        "google-chrome-stable",
        "googlechrome",
        "microsoft-edge-stable",
        "opera-stable",
        "vivaldi-stable",
        "vivaldi",
        "pycharm-community",
        "sublime-text",
        "code",
        "codium",
        "dbeaver-ce",
        "dbeaver",
        "insomnia",
        "joplin",
        "onlyoffice-desktopeditors",
        "megasync",
        "nextcloud-desktop",
        "rustdesk",
        "veracrypt",
        "zen-browser",
        "balena-etcher-electron",
        "balena-etcher",
    }
)

# Ubiquitous packages; a miss on these is almost certainly the registry API
KNOWN_COMMON = frozenset(
    {
        "python3",
        "python",
        "gcc",
        "build-essential",
        "clang",
        "git",
        "docker",
        "docker.io",
        "firefox",
        "chromium",
        "chromium-browser",
        "gimp",
        "blender",
        "vlc",
        "mpv",
        "emacs",
        "neovim",
        "vim",
        "apache2",
        "nginx",
        "redis-server",
        "postgresql",
        "openssh-server",
        "qemu-system",
        "java",
        "jdk",
        "openjdk",
        "default-jdk",
        "nodejs",
        "golang",
        "go",
        "rust",
        "rustc",
        "cargo",
        "ruby",
        "ruby-full",
        "php",
        "lua",
        "lua5.4",
        "r-base",
        "tmux",
        "zsh",
        "bash",
        "curl",
        "wget",
        "htop",
        "btop",
        "fzf",
        "ripgrep",
        "bat",
        "jq",
        "tldr",
        "transmission",
    }
)


def classify(identifier: str, source: str) -> tuple[str, str, str]:
    """Return ``(category, suggestion, notes)`` for a failed identifier."""
    if identifier != identifier.strip():
        return (
            "data_quality",
            f'Trim whitespace from identifier "{identifier}"',
            "Identifier has leading or trailing whitespace",
        )

    name = identifier.lower()
    if name in KNOWN_THIRD_PARTY:
        return (
            "third_party_repo",
            "Remove from seed data or mark as requires third-party repo/PPA",
            f"{identifier} is proprietary software or requires third-party repositories",
        )

    if name in KNOWN_COMMON:
        return (
            "api_false_positive",
            "Package likely exists - API validation failed",
            f"{identifier} is a common package that should exist in {source} repositories",
        )

    return (
        "unknown",
        "Manually verify if package exists with correct identifier",
        "Could be package name change, moved to different repo, or deprecated",
    )


def categorize_error(error: PackageValidationError) -> PackageValidationError:
    """Copy of ``error`` with category, suggestion and notes filled in."""
    category, suggestion, notes = classify(error.package.identifier, error.package.source)
    return error.model_copy(update={"category": category, "suggestion": suggestion, "notes": notes})
