"""
=============================================================================
SOURCE READING
=============================================================================

Assets name their inputs by identifier ("js/site.js"). A SourceProvider
turns an identifier into bytes; the SourceReader fetches all of an asset's
sources at once and hands them back in declaration order.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CONCURRENT READ, ORDERED RESULT                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   identifiers:   [a.js, b.js, c.js]                                 │
    │                     │     │     │      submitted together           │
    │                     ▼     ▼     ▼                                    │
    │   completes:      b.js  c.js  a.js     any order                    │
    │                                                                      │
    │   result:        [a.js, b.js, c.js]    always declaration order     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

FileSourceProvider resolves every identifier and checks the result is still
inside the root, so "../../etc/passwd" never leaves the source directory:

    full_path = (root / identifier).resolve()
    full_path.relative_to(root)      # ValueError → refused

=============================================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import SourceNotFoundError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """One source file as read for a single compile."""
    identifier: str
    raw: bytes
    text: str


class SourceProvider(ABC):
    """Reads raw bytes for a source identifier."""

    @abstractmethod
    def read(self, identifier: str) -> bytes:
        """
        Return the file content.

        Raises:
            SourceNotFoundError: missing or unreadable source.
        """


class FileSourceProvider(SourceProvider):
    """
    Reads sources from a directory tree.

        provider = FileSourceProvider("web/assets")
        provider.read("js/site.js")    # web/assets/js/site.js
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def resolve(self, identifier: str) -> Path:
        """Map an identifier to a path inside the root, or raise."""
        full_path = (self.root / identifier.lstrip("/")).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Source outside root refused: {identifier}")
            raise SourceNotFoundError(identifier, "outside root")
        return full_path

    def read(self, identifier: str) -> bytes:
        path = self.resolve(identifier)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise SourceNotFoundError(identifier, "missing")
        except IsADirectoryError:
            raise SourceNotFoundError(identifier, "not a file")
        except PermissionError:
            raise SourceNotFoundError(identifier, "unreadable")
        except OSError as e:
            logger.error(f"Error reading source {path}: {e}")
            raise SourceNotFoundError(identifier, "unreadable") from e

    def __repr__(self) -> str:
        return f"FileSourceProvider({str(self.root)!r})"


class MemorySourceProvider(SourceProvider):
    """
    Sources held in a dict. Thread-safe; content can change at any time,
    which is how tests (and embedders) simulate edits.
    """

    def __init__(self, files: Optional[Dict[str, str | bytes]] = None):
        self._lock = threading.Lock()
        self._files: Dict[str, bytes] = {}
        for identifier, content in (files or {}).items():
            self.set(identifier, content)

    def set(self, identifier: str, content: str | bytes) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else content
        with self._lock:
            self._files[identifier] = data

    def remove(self, identifier: str) -> None:
        with self._lock:
            self._files.pop(identifier, None)

    def read(self, identifier: str) -> bytes:
        with self._lock:
            try:
                return self._files[identifier]
            except KeyError:
                raise SourceNotFoundError(identifier, "missing") from None


class SourceReader:
    """
    Reads the full source list of an asset, concurrently.

    The worker pool is created on first use and shared by every asset that
    uses this reader.
    """

    def __init__(self, provider: SourceProvider, max_workers: int = 4):
        self.provider = provider
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def read_all(self, identifiers: Sequence[str]) -> List[SourceFile]:
        """
        Read every identifier and return SourceFiles in the same order.

        All reads run to completion; if any failed, the error of the first
        failing identifier (in list order) is raised.
        """
        if len(identifiers) <= 1 or self.max_workers <= 1:
            return [self.read_one(identifier) for identifier in identifiers]

        executor = self._get_executor()
        futures = [executor.submit(self.read_one, identifier) for identifier in identifiers]

        results: List[SourceFile] = []
        first_error: Optional[BaseException] = None
        for future in futures:
            try:
                results.append(future.result())
            except SourceNotFoundError as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
        return results

    def read_one(self, identifier: str) -> SourceFile:
        try:
            raw = self.provider.read(identifier)
        except OSError as e:
            # Providers that report failures with builtin I/O errors
            logger.error(f"Error reading source {identifier}: {e}")
            raise SourceNotFoundError(identifier, "unreadable") from e
        try:
            # utf-8-sig drops a leading BOM, which would otherwise end up
            # in the middle of the concatenated bundle
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise SourceNotFoundError(identifier, "undecodable") from e
        return SourceFile(identifier=identifier, raw=raw, text=text)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="bundler-read",
                )
            return self._executor

    def close(self) -> None:
        """Shut the worker pool down (waits for in-flight reads)."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
