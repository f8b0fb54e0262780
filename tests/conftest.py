import pytest
from pathlib import Path

from config.settings import ServerConfig
from indexer.providers import DOCS_FILE, SEARCH_INDEX_FILE, FullTextIndexer, ProviderContext
from pipelines.headings import extract_headings
from pipelines.models import ProcessedDoc
from server.mcp_server import DocsMCPServer

GETTING_STARTED_HTML = (
    "<!DOCTYPE html><html><head>"
    "<title>Getting Started | My Docs</title>"
    '<meta name="description" content="Learn how to install and configure the library.">'
    "</head><body>"
    '<nav class="navbar">Home Docs Blog</nav>'
    '<div class="main-wrapper"><aside>Sidebar links for every section</aside><main><article>'
    '<h1>Getting Started<a href="#getting-started" class="hash-link">&#8203;</a></h1>'
    "<p>This guide walks you through installing the library and configuring your first project.</p>"
    '<h2 id="installation">Installation<a href="#installation" class="hash-link">&#8203;</a></h2>'
    "<p>Install the package with npm:</p>"
    '<pre><code class="language-bash">npm install my-lib</code></pre>'
    "<h3>Requirements</h3>"
    "<ul><li>Node.js 18 or newer</li><li>A package manager</li></ul>"
    "<h2>Configuration</h2>"
    '<p>Create a config file. See <a href="/docs/authentication">Authentication</a> for credentials.</p>'
    '<script>console.log("tracking")</script>'
    "<footer>Edit this page</footer>"
    "</article></main></div>"
    "<footer>Copyright 2024</footer>"
    "</body></html>"
)

AUTHENTICATION_HTML = (
    "<html><head><title>Authentication</title>"
    '<meta property="og:description" content="Configure OAuth for API access.">'
    "</head><body><main><article>"
    "<h1>Authentication</h1>"
    "<p>Configure OAuth tokens before calling the API. OAuth 2.0 client credentials are supported.</p>"
    "<h2>OAuth setup</h2>"
    "<p>Create an OAuth client in the dashboard and copy its secret.</p>"
    "<h2>Token refresh</h2>"
    "<p>Tokens expire after one hour and must be refreshed.</p>"
    "</article></main></body></html>"
)

SHORT_HTML = "<html><body><article><h1>Stub</h1><p>Tiny.</p></article></body></html>"

NOT_FOUND_HTML = (
    "<html><body><main><h1>Page Not Found</h1>"
    "<p>We could not find what you were looking for on this site.</p></main></body></html>"
)


def make_doc(route: str, title: str, body: str, description: str = "") -> ProcessedDoc:
    return ProcessedDoc(
        route=route,
        title=title,
        description=description,
        body=body,
        headings=tuple(extract_headings(body)),
    )


@pytest.fixture
def sample_docs():
    """Two small documents used across search and server tests."""
    return [
        make_doc(
            "/docs/getting-started",
            "Getting Started",
            "# Getting Started\n\nRun npm install to add the package to your project.\n\n"
            "## Installation\n\nUse npm install my-lib and import it.\n",
            description="Install and configure the library.",
        ),
        make_doc(
            "/docs/authentication",
            "Authentication",
            "# Authentication\n\nConfigure OAuth tokens for API access. OAuth 2.0 is supported.\n\n"
            "## OAuth setup\n\nCreate an OAuth client.\n\n"
            "## Token refresh\n\nTokens expire after one hour.\n",
            description="Configure OAuth for API access.",
        ),
    ]


@pytest.fixture
def site_dir(tmp_path) -> Path:
    """A static site build directory with a handful of rendered pages."""
    pages = {
        "index.html": GETTING_STARTED_HTML.replace("Getting Started", "Welcome"),
        "docs/getting-started/index.html": GETTING_STARTED_HTML,
        "docs/authentication/index.html": AUTHENTICATION_HTML,
        "docs/stub/index.html": SHORT_HTML,
        "404/index.html": NOT_FOUND_HTML,
        "assets/js/index.html": GETTING_STARTED_HTML,
    }
    for relative, html in pages.items():
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    return tmp_path


def build_snapshot_data(docs, base_url: str = ""):
    """Run the full-text indexer in memory and return (docs, index data)."""
    indexer = FullTextIndexer()
    indexer.initialize(ProviderContext(base_url=base_url))
    indexer.index_documents(docs)
    artifacts = indexer.finalize()
    return artifacts[DOCS_FILE], artifacts[SEARCH_INDEX_FILE]


@pytest.fixture
def server_config(sample_docs):
    docs, index_data = build_snapshot_data(sample_docs)
    return ServerConfig(name="test-docs", version="2.0.0", docs=docs, search_index_data=index_data)


@pytest.fixture
def mcp_server(server_config):
    return DocsMCPServer(server_config)
