from opengraph_scan.config import Settings, load_settings
from opengraph_scan.document import (
    REQUIRED_PROPERTIES,
    OpenGraphDocument,
    build_document,
    make_graph,
    parse_absolute_uri,
)
from opengraph_scan.errors import (
    FetchError,
    InvalidSpecificationError,
    OpenGraphError,
    ReadOnlyDocumentError,
)
from opengraph_scan.fetch import FetchResult, fetch_page, fetch_page_async
from opengraph_scan.html_head import extract_open_graph
from opengraph_scan.parse import parse_html, parse_url, parse_url_async
from opengraph_scan.redirects import (
    RedirectChain,
    follow_redirects,
    follow_redirects_async,
    resolve_final_url,
    resolve_final_url_async,
)
from opengraph_scan.util import request_key

__all__ = [
    "__version__",
    "FetchError",
    "FetchResult",
    "InvalidSpecificationError",
    "OpenGraphDocument",
    "OpenGraphError",
    "REQUIRED_PROPERTIES",
    "ReadOnlyDocumentError",
    "RedirectChain",
    "Settings",
    "build_document",
    "extract_open_graph",
    "fetch_page",
    "fetch_page_async",
    "follow_redirects",
    "follow_redirects_async",
    "load_settings",
    "make_graph",
    "parse_absolute_uri",
    "parse_html",
    "parse_url",
    "parse_url_async",
    "request_key",
    "resolve_final_url",
    "resolve_final_url_async",
]

__version__ = "0.1.0"
