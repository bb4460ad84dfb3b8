"""Shared test fixtures for modelscout."""

from __future__ import annotations

import json
import os
from pathlib import Path

import httpx
import numpy as np
import pytest

from modelscout.embeddings.assets import AssetManager
from modelscout.embeddings.encoder import Embedder
from modelscout.embeddings.session import ModelLoader, SessionCell


HIDDEN_DIM = 8
FAKE_WEIGHTS = b"fake-onnx-weights"
MODEL_BASE_URL = "https://models.test/acme/mini/resolve/main"

VOCAB = {
    "[PAD]": 0,
    "[UNK]": 100,
    "[CLS]": 101,
    "[SEP]": 102,
    "hello": 7592,
    "world": 2088,
    "!": 999,
    "un": 1,
    "##aff": 2,
    "##able": 3,
    "the": 4,
    "cat": 5,
    "sat": 6,
    "on": 7,
    "mat": 8,
    "dog": 9,
    "runs": 10,
    "fast": 11,
    ".": 12,
    ",": 13,
    "a": 14,
    "cafe": 15,
    "gear": 16,
    "teeth": 17,
    "##s": 18,
}


class FakeEngine:
    """Per-token deterministic hidden states; positions never interact."""

    def __init__(self, owner: "FakeEngineFactory"):
        self.owner = owner

    def run(self, input_ids, attention_mask, token_type_ids):
        self.owner.run_calls.append(input_ids.copy())
        if self.owner.fail_runs > 0:
            self.owner.fail_runs -= 1
            raise RuntimeError("engine exploded")
        batch, seq = input_ids.shape
        hidden = np.zeros((batch, seq, HIDDEN_DIM), dtype=np.float32)
        for b in range(batch):
            for s in range(seq):
                hidden[b, s] = token_vector(int(input_ids[b, s]))
        return hidden


class FakeEngineFactory:
    """Engine factory that validates the weights file and counts loads."""

    def __init__(self, fail_loads: int = 0, fail_runs: int = 0):
        self.fail_loads = fail_loads
        self.fail_runs = fail_runs
        self.loads = 0
        self.run_calls: list[np.ndarray] = []

    def __call__(self, weights_path: Path) -> FakeEngine:
        self.loads += 1
        if self.fail_loads > 0:
            self.fail_loads -= 1
            raise RuntimeError("cannot parse weights")
        if Path(weights_path).read_bytes() != FAKE_WEIGHTS:
            raise RuntimeError("weights are garbage")
        return FakeEngine(self)


def token_vector(token_id: int) -> np.ndarray:
    return np.random.default_rng(token_id).standard_normal(HIDDEN_DIM).astype(np.float32)


def tokenizer_json(vocab: dict | None = None) -> bytes:
    return json.dumps({"model": {"type": "WordPiece", "vocab": vocab or VOCAB}}).encode("utf-8")


def tokenizer_config_json(**overrides) -> bytes:
    config = {"do_lower_case": True, "model_max_length": 512}
    config.update(overrides)
    return json.dumps(config).encode("utf-8")


class ModelHost:
    """In-memory HTTP host for model assets, served through httpx.MockTransport."""

    def __init__(self):
        self.files = {
            "onnx/model.onnx": FAKE_WEIGHTS,
            "tokenizer.json": tokenizer_json(),
            "tokenizer_config.json": tokenizer_config_json(),
        }
        self.requests: list[str] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.fail:
            return httpx.Response(503)
        prefix = MODEL_BASE_URL + "/"
        url = str(request.url)
        name = url[len(prefix):] if url.startswith(prefix) else None
        if name not in self.files:
            return httpx.Response(404)
        return httpx.Response(200, content=self.files[name])

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def model_host() -> ModelHost:
    return ModelHost()


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def asset_manager(tmp_path: Path, model_host: ModelHost) -> AssetManager:
    return AssetManager(tmp_path / "model", MODEL_BASE_URL, client=model_host.client())


@pytest.fixture
def loader(asset_manager: AssetManager, engine_factory: FakeEngineFactory) -> ModelLoader:
    return ModelLoader(asset_manager, engine_factory=engine_factory)


@pytest.fixture
def embedder(loader: ModelLoader) -> Embedder:
    return Embedder(SessionCell(loader))


@pytest.fixture
def tmp_settings_path(tmp_path: Path) -> Path:
    """Return a path for a temporary settings.json."""
    return tmp_path / "settings.json"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Point ~ at a temp dir and clear MODELSCOUT_* overrides."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in list(os.environ):
        if var.startswith("MODELSCOUT_"):
            monkeypatch.delenv(var)
    return home


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a temporary modelscout project structure."""
    project = tmp_path / "project"
    (project / ".modelscout").mkdir(parents=True)
    (project / ".modelscout" / "settings.json").write_text(json.dumps({
        "model_name": "acme/mini",
        "batch_size": 4,
    }))
    return project
