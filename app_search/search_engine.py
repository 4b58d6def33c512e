# search_engine.py
"""
One long-lived object per process: an embedding provider plus the current
catalog snapshot. Request handlers share it; nothing is rebuilt per query.
"""
from dataclasses import dataclass, field
from pathlib import Path
import csv
import logging
import os
import threading
from typing import Sequence

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from app_search import config
from app_search.catalog import Item, load_csv
from app_search.embedder import EmbeddingProvider, OnnxEmbeddingProvider, embed_text
from app_search.errors import DegenerateVectorError, EmbeddingProviderError, SearchError
from app_search.indexer import CatalogIndex, build
from app_search.ranker import ScoredResult, rank

logger = logging.getLogger(__name__)

SEARCH_UNAVAILABLE = "search_unavailable"
DEGENERATE_QUERY   = "degenerate_query"


@dataclass
class SearchResponse:
    results: list[ScoredResult] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        out = {"results": [r.to_dict() for r in self.results]}
        if self.error:
            out["error"] = self.error
        return out


class SearchEngine:
    def __init__(
        self,
        provider: EmbeddingProvider,
        items: Sequence[Item] = (),
        k: int = config.K_DEFAULT,
        show_progress: bool = False,
    ):
        self.provider = provider
        self.k = k
        self.show_progress = show_progress
        self.catalog_path: Path | None = None
        self._lock = threading.Lock()
        self._observer = None
        self._index = CatalogIndex.empty()
        if items:
            self.rebuild(items)

    @classmethod
    def from_csv(
        cls,
        path: str | os.PathLike = config.CATALOG_PATH,
        provider: EmbeddingProvider | None = None,
        **kwargs,
    ) -> "SearchEngine":
        engine = cls(provider or OnnxEmbeddingProvider(), **kwargs)
        engine.catalog_path = Path(path)
        engine.reload_catalog()
        return engine

    # ----- index ------------------------------------------------------------
    @property
    def index(self) -> CatalogIndex:
        return self._index

    def embed(self, text: str):
        return embed_text(self.provider, text)

    def rebuild(self, items: Sequence[Item]) -> CatalogIndex:
        """
        Build a fresh index and swap it in; on error the old one stays.

        The lock only serialises rebuilds. Readers never take it, they grab
        whatever snapshot `_index` points at.
        """
        with self._lock:
            new_index = build(items, self.embed, show_progress=self.show_progress)
            self._index = new_index
        return new_index

    def reload_catalog(self) -> CatalogIndex:
        if self.catalog_path is None:
            raise RuntimeError("engine was not created from a catalog file")
        return self.rebuild(load_csv(self.catalog_path))

    # ----- query ------------------------------------------------------------
    def search(self, query: str, k: int | None = None) -> SearchResponse:
        q = (query or "").strip().lower()
        if not q:
            return SearchResponse()

        index = self._index  # one snapshot for the whole request
        try:
            q_vec = self.embed(q)
        except EmbeddingProviderError:
            logger.exception("query embedding failed")
            return SearchResponse(error=SEARCH_UNAVAILABLE)
        except DegenerateVectorError:
            logger.warning("query %r pooled to a zero vector", q)
            return SearchResponse(error=DEGENERATE_QUERY)

        return SearchResponse(results=rank(q_vec, index, self.k if k is None else k))

    # ----- live updates via watchdog ---------------------------------------
    def watch_catalog(self) -> None:
        if self.catalog_path is None:
            raise RuntimeError("engine was not created from a catalog file")
        if self._observer is not None:
            return
        obs = Observer()
        obs.schedule(
            CatalogWatcher(self),
            self.catalog_path.resolve().parent.as_posix(),
            recursive=False,
        )
        obs.daemon = True
        obs.start()
        self._observer = obs

    def stop_watching(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


class CatalogWatcher(FileSystemEventHandler):
    """Rebuilds the engine's index whenever its catalog file changes."""

    def __init__(self, engine: SearchEngine):
        super().__init__()
        self.engine = engine
        self.target = engine.catalog_path.resolve()

    def _matches(self, event) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and Path(os.fsdecode(p)).resolve() == self.target for p in paths)

    def _reload(self, event):
        if not self._matches(event):
            return
        try:
            index = self.engine.reload_catalog()
        except (SearchError, OSError, ValueError, csv.Error):
            logger.exception("catalog rebuild failed, keeping the previous index")
            return
        logger.info("[Indexer] catalog reloaded: %d items", index.size())

    def on_created(self, event):
        self._reload(event)

    def on_modified(self, event):
        self._reload(event)

    def on_moved(self, event):
        self._reload(event)
