"""
Current-catalog holder and background rescans.

Readers grab ``store.current()`` once per request and keep that generation for
the whole request. A rebuild assembles a brand-new Catalog off to the side and
publishes it with a single attribute assignment, so nobody ever sees a
half-built catalog. Only one rebuild runs at a time; overlapping triggers are
no-ops.
"""

import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from music_streamer.core.config import MusicConfig
from music_streamer.core.errors import CatalogNotReadyError

from .metadata import extract_metadata
from .models import Catalog
from .scanner import Extractor, build_catalog


class CatalogStore:
    """Holds the published catalog generation for one library root."""

    def __init__(
        self,
        library_root: Path,
        supported_formats: list[str],
        follow_symlinks: bool = False,
        extractor: Extractor = extract_metadata,
    ):
        self.library_root = Path(library_root)
        self.supported_formats = supported_formats
        self.follow_symlinks = follow_symlinks
        self.extractor = extractor
        self._current: Optional[Catalog] = None
        self._generation = 0
        self._rebuild_lock = threading.Lock()
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: MusicConfig, extractor: Extractor = extract_metadata) -> "CatalogStore":
        return cls(
            library_root=Path(config.library_path).expanduser(),
            supported_formats=config.supported_formats,
            follow_symlinks=config.follow_symlinks,
            extractor=extractor,
        )

    @property
    def is_ready(self) -> bool:
        return self._current is not None

    @property
    def is_rebuilding(self) -> bool:
        return self._rebuild_lock.locked()

    def current(self) -> Catalog:
        """Return the published generation.

        Raises:
            CatalogNotReadyError: If no build has completed yet
        """
        catalog = self._current
        if catalog is None:
            raise CatalogNotReadyError()
        return catalog

    def rebuild(self) -> Optional[Catalog]:
        """Build and publish a new generation.

        Returns:
            The new catalog, or None if another rebuild was already running

        Raises:
            ConfigurationError: If the library root is unusable (the previous
                generation, if any, stays published)
            CatalogIntegrityError: If the scan produced colliding ids
        """
        if not self._rebuild_lock.acquire(blocking=False):
            logger.info("Rebuild already in progress, ignoring trigger")
            return None

        try:
            return self._build_and_publish()
        finally:
            self._rebuild_lock.release()

    def _build_and_publish(self) -> Catalog:
        """Build the next generation; caller must hold the rebuild lock."""
        generation = self._generation + 1
        try:
            catalog = build_catalog(
                self.library_root,
                supported_formats=self.supported_formats,
                follow_symlinks=self.follow_symlinks,
                extractor=self.extractor,
                generation=generation,
            )
        except Exception as e:
            self.last_error = str(e)
            raise

        # Publish: single reference swap
        self._generation = generation
        self._current = catalog
        self.last_error = None
        logger.info(f"Published catalog generation {generation} ({len(catalog)} songs)")
        return catalog

    def trigger_rebuild(self) -> bool:
        """Start a rebuild on a background thread.

        Returns:
            False if a rebuild was already running (nothing started)
        """
        if not self._rebuild_lock.acquire(blocking=False):
            logger.info("Rebuild already in progress, ignoring trigger")
            return False

        # The lock is handed to the thread, which releases it when done
        thread = threading.Thread(
            target=self._rebuild_in_background,
            daemon=True,
            name="CatalogRebuildThread",
        )
        try:
            thread.start()
        except RuntimeError:
            self._rebuild_lock.release()
            raise
        return True

    def _rebuild_in_background(self) -> None:
        try:
            self._build_and_publish()
        except Exception:
            logger.exception("Background catalog rebuild failed")
        finally:
            self._rebuild_lock.release()


class LibraryRescanner:
    """Periodically rebuilds a CatalogStore on a daemon thread."""

    def __init__(self, store: CatalogStore, interval_seconds: float):
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.interval_seconds <= 0 or self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="LibraryRescanThread"
        )
        self._thread.start()
        logger.info(f"Periodic rescans every {self.interval_seconds}s")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.store.rebuild()
            except Exception:
                logger.exception("Periodic rescan failed; keeping previous catalog")
