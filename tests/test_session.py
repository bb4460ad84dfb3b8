"""Tests for model loading, recovery and the single-flight session cell."""

from __future__ import annotations

import threading
import time

import pytest

from modelscout.embeddings.assets import AssetManager
from modelscout.embeddings.session import ModelLoader, SessionCell
from modelscout.errors import AssetUnavailable, ModelCorrupted

from conftest import FakeEngineFactory, ModelHost, tokenizer_json


class TestModelLoader:
    def test_load_downloads_and_initializes(self, loader: ModelLoader, model_host: ModelHost):
        session = loader.load()
        assert session.vocabulary.lookup("hello") == 7592
        assert session.tokenizer.max_length == 512
        assert len(model_host.requests) == 3

    def test_config_caps_max_length(self, loader: ModelLoader, model_host: ModelHost):
        model_host.files["tokenizer_config.json"] = b'{"model_max_length": 128}'
        assert loader.load().tokenizer.max_length == 128

    def test_corrupt_local_vocabulary_recovers(
        self, loader: ModelLoader, asset_manager: AssetManager, model_host: ModelHost,
    ):
        asset_manager.ensure()
        asset_manager.assets().vocabulary.write_text("{broken", encoding="utf-8")
        model_host.requests.clear()

        session = loader.load()

        assert session.vocabulary.lookup("world") == 2088
        assert len(model_host.requests) == 3

    def test_engine_failure_recovers_once(
        self, asset_manager: AssetManager, model_host: ModelHost,
    ):
        factory = FakeEngineFactory(fail_loads=1)
        loader = ModelLoader(asset_manager, engine_factory=factory)
        loader.load()
        assert factory.loads == 2
        assert len(model_host.requests) == 6

    def test_second_failure_is_fatal(self, loader: ModelLoader, model_host: ModelHost):
        model_host.files["tokenizer.json"] = tokenizer_json({"hello": 1})
        with pytest.raises(ModelCorrupted, match="after re-download"):
            loader.load()
        assert len(model_host.requests) == 6

    def test_forced_redownload_is_single_attempt(self, loader: ModelLoader, model_host: ModelHost):
        model_host.files["tokenizer.json"] = b"not json"
        with pytest.raises(ModelCorrupted):
            loader.load(force_redownload=True)
        assert len(model_host.requests) == 3

    def test_download_failure_propagates(self, loader: ModelLoader, model_host: ModelHost):
        model_host.fail = True
        with pytest.raises(AssetUnavailable):
            loader.load()


class TestSessionCell:
    def test_get_memoizes(self, loader: ModelLoader, engine_factory: FakeEngineFactory):
        cell = SessionCell(loader)
        assert not cell.loaded
        first = cell.get()
        assert cell.get() is first
        assert cell.loaded
        assert engine_factory.loads == 1

    def test_concurrent_first_calls_load_once(self, loader: ModelLoader):
        calls = []
        original = loader.load

        def slow_load(force_redownload: bool = False):
            calls.append(force_redownload)
            time.sleep(0.05)
            return original(force_redownload)

        loader.load = slow_load
        cell = SessionCell(loader)
        results = []
        threads = [threading.Thread(target=lambda: results.append(cell.get())) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [False]
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_failed_init_leaves_cell_empty(self, loader: ModelLoader, model_host: ModelHost):
        cell = SessionCell(loader)
        model_host.fail = True
        with pytest.raises(AssetUnavailable):
            cell.get()
        assert not cell.loaded

        model_host.fail = False
        assert cell.get() is not None

    def test_recover_replaces_failed_session(self, loader: ModelLoader, model_host: ModelHost):
        cell = SessionCell(loader)
        failed = cell.get()
        model_host.requests.clear()

        replacement = cell.recover(failed)

        assert replacement is not failed
        assert cell.get() is replacement
        assert len(model_host.requests) == 3

    def test_recover_reuses_existing_replacement(self, loader: ModelLoader, model_host: ModelHost):
        cell = SessionCell(loader)
        failed = cell.get()
        replacement = cell.recover(failed)
        model_host.requests.clear()

        assert cell.recover(failed) is replacement
        assert model_host.requests == []

    def test_reset(self, loader: ModelLoader):
        cell = SessionCell(loader)
        cell.get()
        cell.reset()
        assert not cell.loaded
