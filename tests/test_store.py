"""Tests for the paired JSON/binary embedding store."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from modelscout.corpus.schema import Chunk
from modelscout.corpus.store import EmbeddingStore
from modelscout.errors import InvalidInput, StoreCorrupted


def _chunks() -> list[Chunk]:
    return [
        Chunk(id=0, content="# Intro\n\nHello", heading="Intro", level=1).with_embedding([0.1, 0.2, 0.3]),
        Chunk(id=1, content="## Usage\n\n```py\nx = 1\n```", parent_id=0, heading="Usage", level=2,
              code="```py\nx = 1\n```").with_embedding([0.4, 0.5, 0.6]),
        Chunk(id=2, content="plain").with_embedding([-1.0, 0.0, 1.0]),
    ]


@pytest.fixture
def store(tmp_path: Path) -> EmbeddingStore:
    return EmbeddingStore(tmp_path / "embeddings")


def _assert_deleted(store: EmbeddingStore, name: str) -> None:
    paths = store.paths(name)
    assert not paths.meta.exists()
    assert not paths.binary.exists()
    assert not paths.etag.exists()


class TestSave:
    def test_round_trip(self, store: EmbeddingStore):
        original = _chunks()
        store.save("docs", original)
        loaded = store.load("docs")

        assert loaded == original
        for a, b in zip(original, loaded):
            assert b.embedding.dtype == np.float32
            np.testing.assert_array_equal(a.embedding, b.embedding)

    def test_file_layout(self, store: EmbeddingStore):
        store.save("docs", _chunks(), extra={"source_hash": "abc"})
        paths = store.paths("docs")

        meta = json.loads(paths.meta.read_text(encoding="utf-8"))
        assert meta["dim"] == 3
        assert meta["count"] == 3
        assert meta["source_hash"] == "abc"
        assert meta["chunks"][1] == {
            "id": 1,
            "content": "## Usage\n\n```py\nx = 1\n```",
            "parent_id": 0,
            "heading": "Usage",
            "level": 2,
            "code": "```py\nx = 1\n```",
        }
        assert paths.binary.stat().st_size == 3 * 3 * 4
        first = np.frombuffer(paths.binary.read_bytes()[:12], dtype="<f4")
        np.testing.assert_allclose(first, [0.1, 0.2, 0.3], rtol=1e-6)

    def test_save_replaces_previous(self, store: EmbeddingStore):
        store.save("docs", _chunks())
        store.save("docs", _chunks()[:1])
        assert len(store.load("docs")) == 1

    def test_save_drops_cached_etag(self, store: EmbeddingStore):
        store.save("docs", _chunks())
        store.paths("docs").etag.write_text('"v1"', encoding="utf-8")
        store.save("docs", _chunks())
        assert not store.paths("docs").etag.exists()
        assert len(store.load("docs")) == 3

    def test_empty_rejected(self, store: EmbeddingStore):
        with pytest.raises(InvalidInput):
            store.save("docs", [])

    def test_missing_embedding_rejected(self, store: EmbeddingStore):
        with pytest.raises(InvalidInput):
            store.save("docs", [Chunk(id=0, content="x")])

    def test_mismatched_dims_rejected(self, store: EmbeddingStore):
        chunks = [
            Chunk(id=0, content="a").with_embedding([1.0, 0.0]),
            Chunk(id=1, content="b").with_embedding([1.0, 0.0, 0.0]),
        ]
        with pytest.raises(InvalidInput, match="same length"):
            store.save("docs", chunks)
        assert not store.exists("docs")

    def test_invalid_name_rejected(self, store: EmbeddingStore):
        with pytest.raises(InvalidInput):
            store.paths("../escape")


class TestLoadCorruption:
    @pytest.fixture
    def saved(self, store: EmbeddingStore) -> EmbeddingStore:
        store.save("docs", _chunks())
        store.paths("docs").etag.write_text('"v1"', encoding="utf-8")
        return store

    def _rewrite_meta(self, store: EmbeddingStore, mutate) -> None:
        path = store.paths("docs").meta
        meta = json.loads(path.read_text(encoding="utf-8"))
        mutate(meta)
        path.write_text(json.dumps(meta), encoding="utf-8")

    def test_invalid_json(self, saved: EmbeddingStore):
        saved.paths("docs").meta.write_text("{oops", encoding="utf-8")
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_invalid_utf8(self, saved: EmbeddingStore):
        saved.paths("docs").meta.write_bytes(b"\xff\xfe{}")
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    @pytest.mark.parametrize("key", ["dim", "chunks", "count"])
    def test_missing_key(self, saved: EmbeddingStore, key: str):
        self._rewrite_meta(saved, lambda meta: meta.pop(key))
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_zero_dim(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda meta: meta.update(dim=0))
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_count_mismatch(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda meta: meta.update(count=2))
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_record_without_content(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda meta: meta["chunks"][0].pop("content"))
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_self_parent(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda m: m["chunks"][0].update(parent_id=0))
        with pytest.raises(StoreCorrupted, match="cycle"):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_parent_cycle(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda m: m["chunks"][0].update(parent_id=1))
        with pytest.raises(StoreCorrupted, match="cycle"):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_unknown_parent(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda m: m["chunks"][1].update(parent_id=9))
        with pytest.raises(StoreCorrupted, match="unknown parent"):
            saved.load("docs")

    def test_duplicate_ids(self, saved: EmbeddingStore):
        self._rewrite_meta(saved, lambda m: m["chunks"][1].update(id=0, parent_id=None))
        with pytest.raises(StoreCorrupted, match="duplicated"):
            saved.load("docs")

    def test_truncated_binary(self, saved: EmbeddingStore):
        path = saved.paths("docs").binary
        path.write_bytes(path.read_bytes()[:-4])
        with pytest.raises(StoreCorrupted, match="expected 36"):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    @pytest.mark.parametrize("bad", [np.nan, np.inf])
    def test_non_finite_values(self, saved: EmbeddingStore, bad: float):
        path = saved.paths("docs").binary
        values = np.frombuffer(path.read_bytes(), dtype="<f4").copy()
        values[4] = bad
        path.write_bytes(values.tobytes())
        with pytest.raises(StoreCorrupted):
            saved.load("docs")
        _assert_deleted(saved, "docs")

    def test_missing_files_propagate_without_cleanup(self, saved: EmbeddingStore):
        saved.paths("docs").binary.unlink()
        with pytest.raises(FileNotFoundError):
            saved.load("docs")
        assert saved.paths("docs").meta.exists()

    def test_missing_corpus(self, store: EmbeddingStore):
        with pytest.raises(FileNotFoundError):
            store.load("nothing")

    def test_legacy_string_records(self, store: EmbeddingStore):
        store.directory.mkdir(parents=True)
        paths = store.paths("legacy")
        paths.meta.write_text(json.dumps({"dim": 2, "count": 2, "chunks": ["a", "b"]}), encoding="utf-8")
        paths.binary.write_bytes(np.array([1, 0, 0, 1], dtype="<f4").tobytes())

        chunks = store.load("legacy")

        assert [(c.id, c.content) for c in chunks] == [(0, "a"), (1, "b")]
        np.testing.assert_array_equal(chunks[1].embedding, [0.0, 1.0])
