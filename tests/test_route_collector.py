from pathlib import Path

from pipelines.route_collector import (
    collect_routes,
    discover_html_files,
    filter_routes,
    html_path_to_route,
    route_to_html_path,
)


def test_discovery_skips_asset_directories(site_dir: Path):
    files = discover_html_files(site_dir)
    assert site_dir / "index.html" in files
    assert site_dir / "docs" / "authentication" / "index.html" in files
    assert all("assets" not in f.parts for f in files)


def test_route_mapping(site_dir: Path):
    assert html_path_to_route(site_dir / "index.html", site_dir) == "/"
    assert html_path_to_route(site_dir / "docs" / "stub" / "index.html", site_dir) == "/docs/stub"
    assert route_to_html_path("/", site_dir) == site_dir / "index.html"
    assert route_to_html_path("/docs/stub/", site_dir) == site_dir / "docs" / "stub" / "index.html"


def test_filter_routes_with_globs():
    routes = ["/", "/404", "/search", "/search/results", "/docs/a", "/docs/b1", "/docs/b22"]
    kept = filter_routes(routes, ["/404*", "/search*", "/docs/b?"])
    assert kept == ["/", "/docs/a", "/docs/b22"]


def test_collect_routes_applies_exclusions(site_dir: Path):
    entries = collect_routes(site_dir, ["/404*", "/search*"])
    routes = [e.path for e in entries]

    assert routes == sorted(routes)
    assert "/404" not in routes
    assert set(routes) == {"/", "/docs/authentication", "/docs/getting-started", "/docs/stub"}
    assert len(routes) == len(set(routes))
