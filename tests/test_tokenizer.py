"""Tests for the WordPiece tokenizer."""

from __future__ import annotations

import pytest

from modelscout.embeddings.tokenizer import (
    WordPieceTokenizer,
    is_punctuation,
    normalize_text,
    pre_tokenize,
    wordpiece,
)
from modelscout.embeddings.vocab import Vocabulary

from conftest import VOCAB


@pytest.fixture
def vocab() -> Vocabulary:
    return Vocabulary(VOCAB)


@pytest.fixture
def tokenizer(vocab: Vocabulary) -> WordPieceTokenizer:
    return WordPieceTokenizer(vocab)


class TestNormalize:
    def test_lowercases_and_strips_accents(self):
        assert normalize_text("Café") == "cafe"

    def test_keeps_accents_when_disabled(self):
        assert normalize_text("Café", remove_accents=False) == "café"

    def test_keeps_case_when_disabled(self):
        assert normalize_text("Hello", lowercase=False) == "Hello"

    def test_collapses_whitespace(self):
        assert normalize_text("  hello \t\n  world  ") == "hello world"

    def test_drops_control_characters(self):
        assert normalize_text("hel\x00lo\ufffd wor\x07ld\u200b") == "hello world"

    def test_empty(self):
        assert normalize_text("") == ""


class TestPreTokenize:
    def test_splits_punctuation(self):
        assert pre_tokenize("hello, world!") == ["hello", ",", "world", "!"]

    def test_all_punctuation(self):
        assert pre_tokenize("?!.") == ["?", "!", "."]

    def test_unicode_punctuation(self):
        assert is_punctuation("«")
        assert is_punctuation("$")
        assert not is_punctuation("a")


class TestWordPiece:
    def test_greedy_longest_match(self, vocab: Vocabulary):
        assert wordpiece("unaffable", vocab) == ["un", "##aff", "##able"]

    def test_unmatched_suffix_gives_single_unk(self, vocab: Vocabulary):
        assert wordpiece("unaffxyz", vocab) == ["[UNK]"]

    def test_too_long_word_is_unk(self, vocab: Vocabulary):
        assert wordpiece("a" * 201, vocab) == ["[UNK]"]
        assert wordpiece("hello", vocab, max_input_chars_per_word=4) == ["[UNK]"]


class TestTokenize:
    def test_hello_world(self, tokenizer: WordPieceTokenizer):
        windows = tokenizer.tokenize("Hello world!")
        assert len(windows) == 1
        assert list(windows[0].ids) == [101, 7592, 2088, 999, 102]
        assert windows[0].tokens == ("[CLS]", "hello", "world", "!", "[SEP]")

    def test_empty_text(self, tokenizer: WordPieceTokenizer):
        windows = tokenizer.tokenize("")
        assert [list(w.ids) for w in windows] == [[101, 102]]

    def test_unknown_word(self, tokenizer: WordPieceTokenizer):
        assert list(tokenizer.tokenize("hello zzz")[0].ids) == [101, 7592, 100, 102]

    def test_deterministic(self, tokenizer: WordPieceTokenizer):
        text = "The cat sat on the mat, unaffable!"
        assert tokenizer.tokenize(text) == tokenizer.tokenize(text)

    def test_token_ids_matches_single_window(self, tokenizer: WordPieceTokenizer):
        assert tokenizer.token_ids("hello world") == [101, 7592, 2088, 102]

    def test_windows_overlap(self, vocab: Vocabulary):
        tokenizer = WordPieceTokenizer(vocab, max_length=12)
        text = " ".join(["cat"] * 25)
        windows = tokenizer.tokenize(text)

        # window = 10 pieces, overlap = 1, stride = 9
        assert [len(w) for w in windows] == [12, 12, 9]
        for w in windows:
            assert w.ids[0] == 101 and w.ids[-1] == 102
            assert len(w) <= 12

    def test_window_content_covers_all_pieces(self, vocab: Vocabulary):
        tokenizer = WordPieceTokenizer(vocab, max_length=7)
        words = ["the", "cat", "sat", "on", "the", "mat", "dog", "runs", "fast", "a", "gear"]
        windows = tokenizer.tokenize(" ".join(words))

        # window = 5, overlap = 0, so windows tile the pieces exactly
        content = [t for w in windows for t in w.tokens[1:-1]]
        assert content == words

    def test_exact_fit_is_single_window(self, vocab: Vocabulary):
        tokenizer = WordPieceTokenizer(vocab, max_length=5)
        assert len(tokenizer.tokenize("the cat sat")) == 1
        assert len(tokenizer.tokenize("the cat sat on")) == 2

    def test_rejects_tiny_max_length(self, vocab: Vocabulary):
        with pytest.raises(ValueError):
            WordPieceTokenizer(vocab, max_length=2)
