"""
=============================================================================
COMPILE CACHE
=============================================================================

Each asset owns one CompileCache. It remembers the last good compile per
variant (one variant per locale for localized assets, a single "" variant
otherwise) and makes sure a given compile happens once, no matter how many
requests ask for it at the same time.

=============================================================================
FINGERPRINTS
=============================================================================

    source fingerprint   sha256(sources + processor settings + locale)
                         "has anything that feeds the compile changed?"
                         Recomputed on every access (pull-based
                         invalidation, no file watcher).

    content fingerprint  sha256(compiled body)
                         "which bytes did the client get?"
                         Sent as the strong ETag.

=============================================================================
SINGLE-FLIGHT COALESCING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │             5 REQUESTS, STALE ARTIFACT, SAME NEW SOURCES            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   req 1 ──► miss ──► becomes LEADER ──► compile ──► install ──┐     │
    │   req 2 ──► miss ──► joins flight ─────────── wait ───────────┤     │
    │   req 3 ──► miss ──► joins flight ─────────── wait ───────────┤     │
    │   req 4 ──► miss ──► joins flight ─────────── wait ───────────┤     │
    │   req 5 ──► miss ──► joins flight ─────────── wait ───────────┤     │
    │                                                               ▼     │
    │                          all five get the SAME artifact (or error)  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    - flights are keyed by (variant, source fingerprint); unrelated assets
      and other locales never wait on each other
    - a hit never takes the lock: slots hold immutable artifacts and a slot
      is replaced with a single dict assignment
    - on failure the slot keeps its previous artifact; the next request
      starts a fresh flight
    - flights are numbered when they start; a flight that finishes after a
      later-started flight of the same variant has installed hands its
      artifact to its own waiters but leaves the slot alone

=============================================================================
"""

import hashlib
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .sources import SourceFile


logger = logging.getLogger(__name__)

CONTENT_FINGERPRINT_LENGTH = 32


@dataclass(frozen=True)
class CompiledArtifact:
    """
    The compiled output of an asset for one variant.

    Immutable: readers holding a reference never see it change.
    """
    route: str
    locale: Optional[str]
    body: bytes
    content_fingerprint: str
    source_fingerprint: str
    compiled_at: datetime
    generation: int

    @property
    def etag(self) -> str:
        """Strong validator: the quoted content fingerprint."""
        return f'"{self.content_fingerprint}"'

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def __len__(self) -> int:
        return len(self.body)


def compute_source_fingerprint(
    sources: Sequence[SourceFile],
    settings_key: str,
    locale: Optional[str] = None,
) -> str:
    """
    Hash everything a compile depends on.

    Each source is length-prefixed so moving bytes across a file boundary
    ("ab" + "c" vs "a" + "bc") changes the hash.
    """
    hasher = hashlib.sha256()
    for source in sources:
        hasher.update(source.identifier.encode("utf-8"))
        hasher.update(b"\x00")
        hasher.update(str(len(source.raw)).encode("ascii"))
        hasher.update(b"\x00")
        hasher.update(source.raw)
    hasher.update(b"\x01settings\x00")
    hasher.update(settings_key.encode("utf-8"))
    hasher.update(b"\x01locale\x00")
    hasher.update((locale or "").encode("utf-8"))
    return hasher.hexdigest()


def compute_content_fingerprint(body: bytes) -> str:
    return hashlib.sha256(body).hexdigest()[:CONTENT_FINGERPRINT_LENGTH]


class _Flight:
    """One in-progress compile that other threads can wait on."""

    def __init__(self, sequence: int):
        self.sequence = sequence
        self.done = threading.Event()
        self.artifact: Optional[CompiledArtifact] = None
        self.error: Optional[BaseException] = None
        self.waiters = 0


class CompileCache:
    """
    Per-asset cache of compiled artifacts with coalesced compiles.
    """

    def __init__(self, route: str):
        self.route = route
        self._slots: Dict[str, CompiledArtifact] = {}
        self._flights: Dict[Tuple[str, str], _Flight] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._compile_count = 0
        self._sequence = 0
        # variant -> sequence of the flight whose artifact sits in the slot
        self._installed: Dict[str, int] = {}

    def peek(self, variant: str = "") -> Optional[CompiledArtifact]:
        """Current artifact for a variant, without compiling or locking."""
        return self._slots.get(variant)

    def get_or_compile(
        self,
        variant: str,
        source_fingerprint: str,
        compile_fn: Callable[[], bytes],
        locale: Optional[str] = None,
    ) -> CompiledArtifact:
        """
        Return the artifact for `source_fingerprint`, compiling at most once.

        Args:
            variant: Cache slot ("" or a locale).
            source_fingerprint: Fingerprint of the current inputs.
            compile_fn: Produces the body. Runs on the calling thread of
                        whichever request leads the flight.
            locale: Stored on the artifact.

        Raises:
            Whatever compile_fn raised; every waiter of the flight gets the
            same exception object.
        """
        current = self._slots.get(variant)
        if current is not None and current.source_fingerprint == source_fingerprint:
            logger.debug(f"Cache hit {self.route} [{variant or '-'}] gen {current.generation}")
            return current

        key = (variant, source_fingerprint)
        with self._lock:
            # Re-check under the lock: a flight may have finished meanwhile.
            current = self._slots.get(variant)
            if current is not None and current.source_fingerprint == source_fingerprint:
                return current

            flight = self._flights.get(key)
            leader = flight is None
            if leader:
                self._sequence += 1
                flight = _Flight(self._sequence)
                self._flights[key] = flight
            else:
                flight.waiters += 1

        if not leader:
            logger.debug(f"Waiting on in-flight compile of {self.route} [{variant or '-'}]")
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            return flight.artifact

        try:
            with self._lock:
                self._compile_count += 1
            body = compile_fn()
            with self._lock:
                superseded = self._installed.get(variant, 0) > flight.sequence
                if not superseded:
                    self._generation += 1
                artifact = CompiledArtifact(
                    route=self.route,
                    locale=locale,
                    body=body,
                    content_fingerprint=compute_content_fingerprint(body),
                    source_fingerprint=source_fingerprint,
                    compiled_at=datetime.now(timezone.utc),
                    generation=self._generation,
                )
                if not superseded:
                    self._slots[variant] = artifact
                    self._installed[variant] = flight.sequence
            if superseded:
                logger.debug(f"Compile of {self.route} [{variant or '-'}] superseded by a newer one, not installed")
            flight.artifact = artifact
            return artifact
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._flights.pop(key, None)
            flight.done.set()

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def compile_count(self) -> int:
        """How many times a compile function has been invoked."""
        return self._compile_count

    @property
    def generation(self) -> int:
        """Generation of the most recently installed artifact."""
        return self._generation

    def variants(self) -> List[str]:
        return sorted(self._slots)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._flights)

    def clear(self) -> None:
        """Drop every cached artifact. In-flight compiles still install."""
        with self._lock:
            self._slots.clear()
            self._installed.clear()
