"""Local model asset management.

Ensures the ONNX weights, tokenizer.json and tokenizer_config.json of a
HuggingFace model exist in a local directory, downloading what is missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from modelscout.errors import AssetUnavailable


logger = logging.getLogger(__name__)


WEIGHTS_FILE = "onnx/model.onnx"
VOCABULARY_FILE = "tokenizer.json"
VOCABULARY_CONFIG_FILE = "tokenizer_config.json"
MODEL_FILES = (WEIGHTS_FILE, VOCABULARY_FILE, VOCABULARY_CONFIG_FILE)


@dataclass(frozen=True)
class ModelAssets:
    """Local paths of a model's required files."""
    weights: Path
    vocabulary: Path
    vocabulary_config: Path


class AssetManager:
    """Downloads and tracks the asset files of one model.

    Files are stored flat by basename in ``model_dir``.
    """

    def __init__(
        self,
        model_dir: Path,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = 60.0,
    ):
        self.model_dir = Path(model_dir)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(follow_redirects=True, timeout=self.timeout)
        return self._client

    def asset_url(self, remote_name: str) -> str:
        return f"{self.base_url}/{remote_name}"

    def local_path(self, remote_name: str) -> Path:
        return self.model_dir / Path(remote_name).name

    def assets(self) -> ModelAssets:
        return ModelAssets(
            weights=self.local_path(WEIGHTS_FILE),
            vocabulary=self.local_path(VOCABULARY_FILE),
            vocabulary_config=self.local_path(VOCABULARY_CONFIG_FILE),
        )

    def missing(self) -> list[str]:
        """Remote names of assets with no usable local file."""
        result = []
        for remote_name in MODEL_FILES:
            path = self.local_path(remote_name)
            if not path.is_file() or path.stat().st_size == 0:
                result.append(remote_name)
        return result

    def ensure(self) -> ModelAssets:
        """Download any missing asset and return the local paths."""
        self.model_dir.mkdir(parents=True, exist_ok=True)
        for remote_name in self.missing():
            self.download(remote_name)
        return self.assets()

    def purge(self) -> None:
        """Delete every local asset file, ignoring ones already gone."""
        for remote_name in MODEL_FILES:
            path = self.local_path(remote_name)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not delete %s: %s", path, e)

    def redownload(self) -> ModelAssets:
        """Delete all assets and fetch every one again unconditionally."""
        logger.warning("Re-downloading model assets into %s", self.model_dir)
        self.purge()
        return self.ensure()

    def download(self, remote_name: str) -> Path:
        """Stream one asset to disk via a temporary .part file."""
        url = self.asset_url(remote_name)
        dest = self.local_path(remote_name)
        partial = dest.with_name(dest.name + ".part")

        logger.info("Downloading %s", url)
        try:
            with self.client.stream("GET", url) as response:
                response.raise_for_status()
                with partial.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
            if partial.stat().st_size == 0:
                raise AssetUnavailable(f"empty response from {url}", dest)
            partial.replace(dest)
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            raise AssetUnavailable(f"failed to download {url}: {e}", dest) from e
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise AssetUnavailable(f"failed to write {url}: {e}", dest) from e
        except AssetUnavailable:
            partial.unlink(missing_ok=True)
            raise

        return dest

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
