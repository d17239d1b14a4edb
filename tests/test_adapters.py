import pytest
import requests

from conftest import make_response
from pkgmeta.adapters import (
    AURAdapter,
    FlathubAdapter,
    HomebrewAdapter,
    NixHubAdapter,
    RepologyAdapter,
    SnapcraftAdapter,
    WingetAdapter,
    build_adapters,
)
from pkgmeta.config import Settings
from pkgmeta.errors import InputRequiredError, RegistryError

FLATHUB = "https://flathub.org/api/v2"
SNAP = "https://api.snapcraft.io/v2"
AUR_RPC = "https://aur.archlinux.org/rpc"
REPOLOGY = "https://repology.org/api/v1"
BREW = "https://formulae.brew.sh/api"
WINGET = "https://api.winget.run/v2"
NIXHUB = "https://www.nixhub.io/v2"


def firefox_appstream():
    return {
        "id": "org.mozilla.firefox",
        "name": "Firefox",
        "summary": "Fast, Private & Safe Web Browser",
        "description": "<p>Firefox is a web browser.</p>",
        "icon": "https://dl.flathub.org/icons/firefox.png",
        "project_license": "MPL-2.0",
        "developer_name": "Mozilla",
        "categories": ["Network", "WebBrowser"],
        "urls": {"homepage": "https://www.mozilla.org/firefox/"},
        "releases": [{"version": "131.0", "timestamp": "1727740800"}, {"version": "130.0"}],
        "screenshots": [{"sizes": {"1248x702": "https://dl.flathub.org/shot1.png"}}],
    }


class TestBaseContract:
    def test_blank_query_rejected(self, adapter_kwargs, session):
        adapter = FlathubAdapter(**adapter_kwargs)
        with pytest.raises(InputRequiredError):
            adapter.search("   ")
        assert session.calls == []

    def test_blank_identifier_rejected(self, adapter_kwargs):
        adapter = WingetAdapter(**adapter_kwargs)
        with pytest.raises(ValueError):
            adapter.get_metadata("")

    def test_check_availability_swallows_errors(self, adapter_kwargs, monkeypatch):
        adapter = FlathubAdapter(**adapter_kwargs)

        def boom(identifier):
            raise RuntimeError("boom")

        monkeypatch.setattr(adapter, "get_metadata", boom)
        assert adapter.check_availability("org.mozilla.firefox") is False

    def test_check_availability_on_server_error(self, adapter_kwargs, session):
        session.add(f"{FLATHUB}/appstream/org.gimp.GIMP", make_response(500))
        assert FlathubAdapter(**adapter_kwargs).check_availability("org.gimp.GIMP") is False

    def test_transport_failure_raises_registry_error(self, adapter_kwargs, session, sleeper):
        session.add(f"{FLATHUB}/appstream/org.gimp.GIMP", requests.ConnectionError("down"))

        with pytest.raises(RegistryError) as excinfo:
            FlathubAdapter(**adapter_kwargs).get_metadata("org.gimp.GIMP")

        assert excinfo.value.source == "Flathub"
        assert len(session.calls) == 3
        assert len(sleeper.delays) == 2

    def test_clear_cache_forces_refetch(self, adapter_kwargs, session):
        session.add_json(f"{FLATHUB}/appstream/org.mozilla.firefox", firefox_appstream())
        adapter = FlathubAdapter(**adapter_kwargs)

        adapter.get_metadata("org.mozilla.firefox")
        adapter.clear_cache()
        adapter.get_metadata("org.mozilla.firefox")

        assert len(session.calls) == 2


class TestFlathub:
    def test_search_normalizes_hits(self, adapter_kwargs, session):
        session.add_json(
            f"{FLATHUB}/search/firefox",
            {
                "hits": [
                    {
                        "app_id": "org.mozilla.firefox",
                        "name": "Firefox",
                        "summary": "...",
                        "icon": "https://x/i.png",
                    }
                ]
            },
        )

        results = FlathubAdapter(**adapter_kwargs).search("firefox")

        assert len(results) == 1
        hit = results[0]
        assert hit.identifier == "org.mozilla.firefox"
        assert hit.name == "Firefox"
        assert hit.summary == "..."
        assert hit.icon_url == "https://x/i.png"
        assert hit.source == "flatpak"

    def test_search_cache_is_case_insensitive(self, adapter_kwargs, session):
        session.add_json(f"{FLATHUB}/search/Firefox", {"hits": []})
        adapter = FlathubAdapter(**adapter_kwargs)

        adapter.search("Firefox")
        adapter.search("firefox")

        assert len(session.calls) == 1

    def test_search_cache_expires(self, adapter_kwargs, session, clock):
        session.add_json(f"{FLATHUB}/search/gimp", {"hits": []})
        adapter = FlathubAdapter(search_ttl=15, **adapter_kwargs)

        adapter.search("gimp")
        clock.advance(15 * 60)
        adapter.search("gimp")

        assert len(session.calls) == 2

    def test_metadata_from_appstream(self, adapter_kwargs, session):
        session.add_json(f"{FLATHUB}/appstream/org.mozilla.firefox", firefox_appstream())

        meta = FlathubAdapter(**adapter_kwargs).get_metadata("org.mozilla.firefox")

        assert meta.version == "131.0"
        assert meta.homepage == "https://www.mozilla.org/firefox/"
        assert meta.license == "MPL-2.0"
        assert meta.maintainer == "Mozilla"
        assert meta.categories == ["Network", "WebBrowser"]
        assert meta.screenshots == ["https://dl.flathub.org/shot1.png"]
        assert meta.release_date.startswith("2024-10-01")

    def test_not_found_is_none_and_not_cached(self, adapter_kwargs, session):
        adapter = FlathubAdapter(**adapter_kwargs)

        assert adapter.get_metadata("org.example.Missing") is None
        assert adapter.get_metadata("org.example.Missing") is None
        assert len(session.calls) == 2

    def test_server_error_message(self, adapter_kwargs, session):
        session.add(f"{FLATHUB}/search/vlc", make_response(503))

        with pytest.raises(RegistryError, match="Flathub API error: 503"):
            FlathubAdapter(**adapter_kwargs).search("vlc")


def snap_info(name, version="1.0", risk="stable"):
    return {
        "name": name,
        "snap": {
            "name": name,
            "title": name.title(),
            "summary": f"{name} summary",
            "publisher": {"display-name": "Canonical", "username": "canonical"},
            "media": [
                {"type": "icon", "url": f"https://snap/{name}.png"},
                {"type": "screenshot", "url": f"https://snap/{name}-1.png"},
            ],
            "categories": [{"name": "utilities"}],
            "download-size": 1024,
        },
        "channel-map": [
            {"channel": {"risk": "edge"}, "version": "9.9-edge", "released-at": "2024-02-01"},
            {"channel": {"risk": risk}, "version": version, "released-at": "2024-01-01"},
        ],
    }


class TestSnapcraft:
    def test_metadata_uses_stable_channel(self, adapter_kwargs, session):
        session.add_json(f"{SNAP}/snaps/info/vlc", snap_info("vlc", "3.0.20"))

        meta = SnapcraftAdapter(**adapter_kwargs).get_metadata("vlc")

        assert meta.version == "3.0.20"
        assert meta.release_date == "2024-01-01"
        assert meta.icon_url == "https://snap/vlc.png"
        assert meta.screenshots == ["https://snap/vlc-1.png"]
        assert meta.maintainer == "Canonical"
        assert meta.download_size == 1024
        assert len(meta.metadata["channels"]) == 2

    def test_sends_device_series_header(self, adapter_kwargs, session):
        session.add_json(f"{SNAP}/snaps/info/vlc", snap_info("vlc"))
        SnapcraftAdapter(**adapter_kwargs).get_metadata("vlc")
        assert session.calls[0].headers["Snap-Device-Series"] == "16"

    def test_search_degrades_failed_detail_fetch(self, adapter_kwargs, session):
        session.add_json(
            f"{SNAP}/snaps/find", {"results": [{"name": "vlc"}, {"name": "broken"}]}
        )
        session.add_json(f"{SNAP}/snaps/info/vlc", snap_info("vlc", "3.0.20"))
        session.add(f"{SNAP}/snaps/info/broken", make_response(500))

        results = SnapcraftAdapter(**adapter_kwargs).search("video")

        assert [r.identifier for r in results] == ["vlc", "broken"]
        assert results[0].version == "3.0.20"
        assert results[1].name == "broken"
        assert results[1].version is None

    def test_search_caps_detail_fetches(self, adapter_kwargs, session):
        names = [f"snap{i}" for i in range(15)]
        session.add_json(f"{SNAP}/snaps/find", {"results": [{"name": n} for n in names]})
        for name in names:
            session.add_json(f"{SNAP}/snaps/info/{name}", snap_info(name))

        results = SnapcraftAdapter(**adapter_kwargs).search("snap")

        assert len(results) == SnapcraftAdapter.DETAIL_LIMIT
        assert len(session.calls) == 1 + SnapcraftAdapter.DETAIL_LIMIT


def aur_pkg(name, **extra):
    pkg = {
        "Name": name,
        "PackageBase": name,
        "Version": "1.2-1",
        "Description": f"{name} from the AUR",
        "URL": f"https://{name}.example.org",
        "License": ["MIT", "Apache-2.0"],
        "Maintainer": "someone",
        "NumVotes": 42,
        "Popularity": 1.5,
        "LastModified": 1700000000,
        "URLPath": f"/cgit/aur.git/snapshot/{name}.tar.gz",
    }
    pkg.update(extra)
    return pkg


class TestAUR:
    def test_info_requires_single_result(self, adapter_kwargs, session):
        session.add_json(AUR_RPC, {"type": "multiinfo", "resultcount": 0, "results": []})
        assert AURAdapter(**adapter_kwargs).get_metadata("nothing") is None

    def test_info_metadata(self, adapter_kwargs, session):
        session.add_json(
            AUR_RPC,
            {"type": "multiinfo", "resultcount": 1, "results": [aur_pkg("yay", Depends=["git"])]},
        )

        meta = AURAdapter(**adapter_kwargs).get_metadata("yay")

        assert meta.version == "1.2-1"
        assert meta.license == "MIT, Apache-2.0"
        assert meta.metadata["votes"] == 42
        assert meta.metadata["depends"] == ["git"]
        assert meta.metadata["urlPath"] == "https://aur.archlinux.org/cgit/aur.git/snapshot/yay.tar.gz"
        assert ("arg[]", "yay") in session.calls[0].params

    def test_error_envelope_raises(self, adapter_kwargs, session):
        session.add_json(AUR_RPC, {"type": "error", "error": "Too many package results."})

        with pytest.raises(RegistryError, match="Too many package results"):
            AURAdapter(**adapter_kwargs).search("a")

    def test_search(self, adapter_kwargs, session):
        session.add_json(AUR_RPC, {"type": "search", "results": [aur_pkg("paru"), aur_pkg("yay")]})

        results = AURAdapter(**adapter_kwargs).search("aur helper")

        assert [r.identifier for r in results] == ["paru", "yay"]
        assert all(r.source == "aur" for r in results)
        assert ("by", "name-desc") in session.calls[0].params

    def test_bulk_metadata_single_request(self, adapter_kwargs, session):
        session.add_json(AUR_RPC, {"type": "multiinfo", "results": [aur_pkg("paru"), aur_pkg("yay")]})

        found = AURAdapter(**adapter_kwargs).get_packages_metadata(["paru", "yay", "missing"])

        assert set(found) == {"paru", "yay"}
        assert len(session.calls) == 1
        args = [v for k, v in session.calls[0].params if k == "arg[]"]
        assert args == ["paru", "yay", "missing"]

    def test_bulk_metadata_empty_input(self, adapter_kwargs, session):
        assert AURAdapter(**adapter_kwargs).get_packages_metadata([]) == {}
        assert session.calls == []


REPOLOGY_FIREFOX = [
    {"repo": "debian_stable", "name": "firefox-esr", "version": "115.0", "status": "legacy"},
    {"repo": "debian_stable", "name": "firefox", "version": "131.0", "status": "newest",
     "summary": "Web browser", "licenses": ["MPL-2.0"], "maintainers": ["team@debian.org"]},
    {"repo": "arch", "name": "firefox", "version": "131.0", "status": "newest"},
    {"repo": "gentoo", "name": "firefox", "version": "131.0", "status": "newest"},
    {"repo": "fedora_39", "name": "firefox", "version": "130.0", "status": "outdated"},
]


class TestRepology:
    def test_search_dedupes_and_filters_repos(self, adapter_kwargs, session):
        session.add_json(f"{REPOLOGY}/project/firefox", REPOLOGY_FIREFOX)

        results = RepologyAdapter(**adapter_kwargs).search("firefox")

        # gentoo is not a supported repo; debian_stable keeps its newest entry
        assert [r.version for r in results] == ["131.0", "131.0", "130.0"]
        assert results[0].license == "MPL-2.0"
        assert all(r.source == "repology" for r in results)

    def test_metadata_prefers_newest(self, adapter_kwargs, session):
        session.add_json(f"{REPOLOGY}/project/firefox", REPOLOGY_FIREFOX)

        meta = RepologyAdapter(**adapter_kwargs).get_metadata("firefox")

        assert meta.version == "131.0"
        assert meta.maintainer == "team@debian.org"
        assert len(meta.metadata["availableRepos"]) == len(REPOLOGY_FIREFOX)

    def test_unknown_project(self, adapter_kwargs):
        adapter = RepologyAdapter(**adapter_kwargs)
        assert adapter.get_metadata("nope") is None
        assert adapter.search("nope") == []

    def test_project_payload_cached(self, adapter_kwargs, session):
        session.add_json(f"{REPOLOGY}/project/firefox", REPOLOGY_FIREFOX)
        adapter = RepologyAdapter(**adapter_kwargs)

        adapter.get_project_packages("firefox")
        adapter.packages_for_distro("firefox", "debian")

        assert len(session.calls) == 1

    def test_packages_for_distro(self, adapter_kwargs, session):
        session.add_json(f"{REPOLOGY}/project/firefox", REPOLOGY_FIREFOX)
        adapter = RepologyAdapter(**adapter_kwargs)

        assert {e["repo"] for e in adapter.packages_for_distro("firefox", "rhel")} == {"fedora_39"}
        assert adapter.packages_for_distro("firefox", "beos") == []


FORMULAE = [
    {"name": "wget", "full_name": "wget", "desc": "Internet file retriever",
     "versions": {"stable": "1.24.5"}, "homepage": "https://www.gnu.org/software/wget/",
     "license": "GPL-3.0-or-later"},
    {"name": "curl", "full_name": "curl", "desc": "Get a file from an HTTP server",
     "versions": {"stable": "8.10.1"}},
]
CASKS = [
    {"token": "firefox", "name": ["Mozilla Firefox"], "desc": "Web browser",
     "version": "131.0", "homepage": "https://www.mozilla.org/firefox/"},
]


class TestHomebrew:
    def test_search_filters_catalogs(self, adapter_kwargs, session):
        session.add_json(f"{BREW}/formula.json", FORMULAE)
        session.add_json(f"{BREW}/cask.json", CASKS)

        results = HomebrewAdapter(**adapter_kwargs).search("FILE")

        assert [r.identifier for r in results] == ["wget", "curl"]
        assert results[0].version == "1.24.5"

    def test_search_matches_casks(self, adapter_kwargs, session):
        session.add_json(f"{BREW}/formula.json", FORMULAE)
        session.add_json(f"{BREW}/cask.json", CASKS)

        results = HomebrewAdapter(**adapter_kwargs).search("browser")

        assert [(r.identifier, r.version) for r in results] == [("firefox", "131.0")]

    def test_search_capped(self, adapter_kwargs, session):
        many = [{"name": f"tool{i}", "desc": "a tool"} for i in range(80)]
        session.add_json(f"{BREW}/formula.json", many)
        session.add_json(f"{BREW}/cask.json", [])

        assert len(HomebrewAdapter(**adapter_kwargs).search("tool")) == 50

    def test_catalog_cached_across_queries(self, adapter_kwargs, session, clock):
        session.add_json(f"{BREW}/formula.json", FORMULAE)
        session.add_json(f"{BREW}/cask.json", CASKS)
        adapter = HomebrewAdapter(catalog_ttl=60, **adapter_kwargs)

        adapter.search("wget")
        adapter.search("curl")
        assert len(session.calls) == 2

        clock.advance(60 * 60)
        adapter.search("ripgrep")
        assert len(session.calls) == 4

    def test_metadata_falls_back_to_cask(self, adapter_kwargs, session):
        session.add_json(f"{BREW}/cask/firefox.json", CASKS[0])

        meta = HomebrewAdapter(**adapter_kwargs).get_metadata("firefox")

        assert meta.identifier == "firefox"
        assert meta.version == "131.0"
        assert meta.metadata["kind"] == "cask"
        assert [c.url for c in session.calls] == [
            f"{BREW}/formula/firefox.json",
            f"{BREW}/cask/firefox.json",
        ]

    def test_formula_metadata(self, adapter_kwargs, session):
        formula = dict(FORMULAE[0], tap="homebrew/core", revision=0,
                       urls={"stable": {"url": "https://ftp.gnu.org/wget.tar.gz"}})
        session.add_json(f"{BREW}/formula/wget.json", formula)

        meta = HomebrewAdapter(**adapter_kwargs).get_metadata("wget")

        assert meta.metadata["tap"] == "homebrew/core"
        assert meta.metadata["downloadUrl"] == "https://ftp.gnu.org/wget.tar.gz"

    def test_missing_everywhere(self, adapter_kwargs):
        assert HomebrewAdapter(**adapter_kwargs).get_metadata("nope") is None


class TestWinget:
    def test_search(self, adapter_kwargs, session):
        session.add_json(
            f"{WINGET}/packages",
            {"Packages": [{"Id": "Mozilla.Firefox", "Name": "Firefox", "Publisher": "Mozilla",
                           "Versions": [{"Version": "131.0"}]}]},
        )

        results = WingetAdapter(**adapter_kwargs).search("firefox")

        assert results[0].identifier == "Mozilla.Firefox"
        assert results[0].version == "131.0"
        assert results[0].maintainer == "Mozilla"
        assert session.calls[0].params == {"query": "firefox", "take": 50}

    def test_metadata_prefers_latest_version(self, adapter_kwargs, session):
        session.add_json(
            f"{WINGET}/packages/Mozilla.Firefox",
            {"Id": "Mozilla.Firefox", "Name": "Firefox", "LatestVersion": {"Version": "132.0"},
             "Versions": [{"Version": "131.0", "Installers": [{"Architecture": "x64"}]}],
             "Tags": ["browser"]},
        )

        meta = WingetAdapter(**adapter_kwargs).get_metadata("Mozilla.Firefox")

        assert meta.version == "132.0"
        assert meta.metadata["tags"] == ["browser"]
        assert meta.metadata["installers"] == [{"Architecture": "x64"}]


class TestNixHub:
    def test_metadata_from_first_release(self, adapter_kwargs, session):
        session.add_json(
            f"{NIXHUB}/pkg",
            {"name": "ripgrep", "summary": "Fast grep", "homepage_url": "https://rg.example",
             "license": "MIT",
             "releases": [{"version": "14.1.1", "last_updated": "2024-09-01",
                           "platforms": ["x86_64-linux"]}, {"version": "14.0.0"}]},
        )

        meta = NixHubAdapter(**adapter_kwargs).get_metadata("ripgrep")

        assert meta.version == "14.1.1"
        assert meta.release_date == "2024-09-01"
        assert meta.homepage == "https://rg.example"
        assert meta.metadata["platforms"] == ["x86_64-linux"]
        assert session.calls[0].params == {"name": "ripgrep"}

    def test_search(self, adapter_kwargs, session):
        session.add_json(f"{NIXHUB}/search", {"results": [{"name": "ripgrep", "summary": "rg"}]})

        results = NixHubAdapter(**adapter_kwargs).search("rip")

        assert [(r.identifier, r.summary, r.source) for r in results] == [("ripgrep", "rg", "nixhub")]

    def test_rate_limit(self, adapter_kwargs, session):
        session.add(f"{NIXHUB}/search", make_response(429))

        with pytest.raises(RegistryError, match="rate limit") as excinfo:
            NixHubAdapter(**adapter_kwargs).search("rip")
        assert excinfo.value.status == 429


class TestBuildAdapters:
    def test_one_adapter_per_source(self, session):
        adapters = build_adapters(Settings(), session=session)

        assert set(adapters) == {"flatpak", "snap", "aur", "repology", "homebrew", "winget", "nixhub"}
        assert all(a.session is session for a in adapters.values())
        assert adapters["flatpak"].search_cache is not adapters["snap"].search_cache

    def test_settings_applied(self, session):
        settings = Settings(cache={"catalog_ttl_minutes": 120}, http={"retries": 5})
        adapters = build_adapters(settings, session=session)

        assert adapters["homebrew"].catalog_cache.ttl == 120 * 60
        assert adapters["aur"].retries == 5
