"""
=============================================================================
ASSET MANIFESTS
=============================================================================

A JSON file describing assets, so bundles can be compiled from the command
line without writing Python:

    [
      {"route": "/bundle.js", "type": "js", "files": ["a.js", "b.js"],
       "minify": true},
      {"route": "/site.css", "type": "css", "files": ["site.css"]},
      {"route": "/i18n.js", "type": "js", "files": ["i18n.js"],
       "localize": {"fr": {"greeting": "Bonjour"}}, "escape": "js"}
    ]

    route      required
    type       "js", "css" or any MIME type              (required)
    files      non-empty list, relative to the source root (required)
    minify     minify js/css output                      (default: true)
    localize   {locale: {key: text}} string catalog       (optional)
    escape     "js" to escape substituted strings         (optional)

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConfigurationError
from .http.mime_types import CSS, JAVASCRIPT, resolve_content_type
from .pipeline import Pipeline
from .processors import StringCatalog, js_string_escape


logger = logging.getLogger(__name__)

_ESCAPES = {"js": js_string_escape}


@dataclass
class ManifestEntry:
    route: str
    content_type: str
    files: List[str]
    minify: bool = True
    localize: Optional[Dict[str, Dict[str, str]]] = None
    escape: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)


def parse_manifest(data: object) -> List[ManifestEntry]:
    """
    Validate decoded manifest JSON.

    Raises:
        ConfigurationError: on any structural problem, naming the entry.
    """
    if isinstance(data, dict) and "assets" in data:
        data = data["assets"]
    if not isinstance(data, list):
        raise ConfigurationError("Manifest must be a list of asset entries")

    entries = []
    for index, item in enumerate(data):
        where = f"manifest entry {index}"
        if not isinstance(item, dict):
            raise ConfigurationError(f"{where} must be an object")

        route = item.get("route")
        content_type = item.get("type")
        files = item.get("files")
        if not isinstance(route, str) or not route:
            raise ConfigurationError(f"{where} needs a 'route'")
        if not isinstance(content_type, str) or not content_type:
            raise ConfigurationError(f"{where} ({route}) needs a 'type'")
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise ConfigurationError(f"{where} ({route}) 'files' must be a list of strings")

        localize = item.get("localize")
        if localize is not None and not (
            isinstance(localize, dict)
            and all(isinstance(table, dict) for table in localize.values())
        ):
            raise ConfigurationError(f"{where} ({route}) 'localize' must map locales to objects")

        escape = item.get("escape")
        if escape is not None and escape not in _ESCAPES:
            raise ConfigurationError(f"{where} ({route}) unknown escape {escape!r}")

        known = {"route", "type", "files", "minify", "localize", "escape"}
        entries.append(ManifestEntry(
            route=route,
            content_type=resolve_content_type(content_type),
            files=list(files),
            minify=bool(item.get("minify", True)),
            localize=localize,
            escape=escape,
            extra={k: v for k, v in item.items() if k not in known},
        ))
    return entries


def load_manifest(path: str | Path) -> List[ManifestEntry]:
    """Read and validate a manifest file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Manifest not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Manifest {path} is not valid JSON: {e}") from e
    entries = parse_manifest(data)
    logger.debug(f"Loaded {len(entries)} asset(s) from {path}")
    return entries


def apply_manifest(pipeline: Pipeline, entries: List[ManifestEntry]) -> None:
    """Register every manifest entry on `pipeline`, in order."""
    for entry in entries:
        asset = pipeline.add(entry.route, entry.content_type, entry.files)
        if entry.minify and entry.content_type == JAVASCRIPT:
            asset.minify_javascript()
        elif entry.minify and entry.content_type == CSS:
            asset.minify_css()
        if entry.localize is not None:
            asset.localize(StringCatalog(entry.localize), _ESCAPES.get(entry.escape))
        if entry.extra:
            logger.warning(f"Ignoring unknown keys for {entry.route}: {sorted(entry.extra)}")
