"""Fetch prebuilt corpora from a remote base URL with ETag caching."""

from __future__ import annotations

import logging

import httpx

from modelscout.corpus.schema import Chunk
from modelscout.corpus.store import EmbeddingStore
from modelscout.errors import AssetUnavailable


logger = logging.getLogger(__name__)


class CorpusRefresher:
    """Keeps local copies of remote ``<name>.json``/``<name>.bin`` pairs current.

    The metadata response's ETag is cached in ``<name>.etag`` and sent back
    as ``If-None-Match``; a 304 means the local copy is still valid.
    """

    def __init__(
        self,
        store: EmbeddingStore,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = 60.0,
    ):
        self.store = store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True, timeout=self.timeout)
        return self._client

    def cached_etag(self, name: str) -> str | None:
        if not self.store.exists(name):
            return None
        path = self.store.paths(name).etag
        try:
            etag = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return etag or None

    def refresh(self, name: str) -> list[Chunk]:
        """Bring corpus ``name`` up to date and return its chunks.

        Falls back to the local copy (with a warning) when the remote is
        unreachable; raises AssetUnavailable when there is no local copy.
        StoreCorrupted from validating a download propagates after cleanup.
        """
        try:
            updated = self._fetch(name)
        except httpx.HTTPError as e:
            if self.store.exists(name):
                logger.warning("Could not refresh corpus %s (%s), using local copy", name, e)
                return self.store.load(name)
            raise AssetUnavailable(
                f"failed to fetch corpus {name!r}: {e}", self._url(f"{name}.json")
            ) from e

        if not updated:
            logger.debug("Corpus %s is up to date", name)
        return self.store.load(name)

    def _fetch(self, name: str) -> bool:
        """Download the corpus if changed; returns False on 304."""
        headers = {}
        etag = self.cached_etag(name)
        if etag:
            headers["If-None-Match"] = etag

        meta_response = self.client.get(self._url(f"{name}.json"), headers=headers)
        if meta_response.status_code == 304 and etag:
            return False
        meta_response.raise_for_status()

        bin_response = self.client.get(self._url(f"{name}.bin"))
        bin_response.raise_for_status()

        paths = self.store.paths(name)
        self.store.directory.mkdir(parents=True, exist_ok=True)
        self.store.delete(name)
        paths.binary.write_bytes(bin_response.content)
        paths.meta.write_bytes(meta_response.content)
        new_etag = meta_response.headers.get("etag")
        if new_etag:
            paths.etag.write_text(new_etag, encoding="utf-8")

        logger.info("Downloaded corpus %s (%d bytes of vectors)", name, len(bin_response.content))
        return True

    def _url(self, filename: str) -> str:
        return f"{self.base_url}/{filename}"

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
