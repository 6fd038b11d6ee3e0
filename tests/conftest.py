"""
pytest configuration and fixtures.
"""

from typing import Callable, Dict, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bundler import BundlerConfig, MemorySourceProvider, Pipeline, SourceReader
from bundler.http import HTTPRequest


@pytest.fixture
def files() -> MemorySourceProvider:
    """In-memory source files shared by the pipeline fixtures."""
    return MemorySourceProvider({
        "a.js": "var a=1;",
        "b.js": "var b=2;",
        "site.css": "body {\n  color: red;\n}\n",
        "greeting.txt": "{{greeting|Hello}}, world",
    })


@pytest.fixture
def reader(files: MemorySourceProvider):
    reader = SourceReader(files, max_workers=4)
    yield reader
    reader.close()


@pytest.fixture
def config() -> BundlerConfig:
    return BundlerConfig(default_locale="en")


@pytest.fixture
def pipeline(reader: SourceReader, config: BundlerConfig) -> Pipeline:
    """Unfrozen pipeline reading from the in-memory files."""
    return Pipeline(reader=reader, config=config)


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory: make_request("/bundle.js?v=1", headers={...}, method="GET")."""

    def factory(
        target: str,
        headers: Optional[Dict[str, str]] = None,
        method: str = "GET",
    ) -> HTTPRequest:
        return HTTPRequest.from_target(method, target, headers, client_address=("127.0.0.1", 50000))

    return factory
