"""BERT-compatible WordPiece tokenizer.

Pipeline: normalize -> pre-tokenize on whitespace/punctuation -> greedy
longest-match WordPiece -> wrap in [CLS]/[SEP], splitting long inputs into
overlapping windows -> ids.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

from modelscout.embeddings.vocab import CLS_TOKEN, SEP_TOKEN, UNK_TOKEN, Vocabulary


CONTINUATION_PREFIX = "##"
WINDOW_OVERLAP_RATIO = 0.1

_WHITESPACE_RUN = re.compile(r"\s+")
_CONTROL_CATEGORIES = frozenset({"Cc", "Cf", "Co", "Cs"})


@dataclass(frozen=True)
class TokenSequence:
    """One [CLS] ... [SEP] window of tokens and their ids."""
    tokens: tuple[str, ...]
    ids: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.ids)


def is_punctuation(char: str) -> bool:
    """ASCII punctuation ranges or any Unicode P* category."""
    cp = ord(char)
    if 33 <= cp <= 47 or 58 <= cp <= 64 or 91 <= cp <= 96 or 123 <= cp <= 126:
        return True
    return unicodedata.category(char).startswith("P")


def _is_control(char: str) -> bool:
    if char in ("\t", "\n", "\r"):
        return False
    return unicodedata.category(char) in _CONTROL_CATEGORIES


def strip_accents(text: str) -> str:
    """Drop combining marks from NFD-decomposed text."""
    return "".join(c for c in text if unicodedata.category(c) != "Mn")


def normalize_text(text: str, lowercase: bool = True, remove_accents: bool = True) -> str:
    """BERT text normalization."""
    if not text:
        return ""
    text = unicodedata.normalize("NFD", text)

    cleaned = []
    for char in text:
        if char in ("\x00", "\ufffd"):
            continue
        if char.isspace():
            cleaned.append(" ")
        elif not _is_control(char):
            cleaned.append(char)
    text = _WHITESPACE_RUN.sub(" ", "".join(cleaned)).strip()

    if lowercase:
        text = text.lower()
    if remove_accents:
        text = strip_accents(text)
    return text


def pre_tokenize(text: str) -> list[str]:
    """Split on whitespace; emit each punctuation character as its own token."""
    tokens: list[str] = []
    current: list[str] = []

    for char in text:
        if char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        elif is_punctuation(char):
            if current:
                tokens.append("".join(current))
                current = []
            tokens.append(char)
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens


def wordpiece(
    token: str,
    vocab: Vocabulary,
    max_input_chars_per_word: int = 200,
) -> list[str]:
    """Greedy longest-match-first WordPiece split of one pre-token.

    Returns ``[UNK]`` for the whole token if any position cannot be matched
    or the token is longer than ``max_input_chars_per_word``.
    """
    if len(token) > max_input_chars_per_word:
        return [UNK_TOKEN]

    pieces: list[str] = []
    start = 0
    while start < len(token):
        end = len(token)
        match = None
        while start < end:
            candidate = token[start:end]
            if start > 0:
                candidate = CONTINUATION_PREFIX + candidate
            if candidate in vocab:
                match = candidate
                break
            end -= 1

        if match is None:
            return [UNK_TOKEN]
        pieces.append(match)
        start = end

    return pieces


class WordPieceTokenizer:
    """Tokenizer bound to one vocabulary and normalization setup."""

    def __init__(
        self,
        vocab: Vocabulary,
        max_length: int = 512,
        max_input_chars_per_word: int = 200,
        lowercase: bool = True,
        remove_accents: bool = True,
    ):
        if max_length < 3:
            raise ValueError("max_length must leave room for [CLS], [SEP] and content")
        self.vocab = vocab
        self.max_length = max_length
        self.max_input_chars_per_word = max_input_chars_per_word
        self.lowercase = lowercase
        self.remove_accents = remove_accents

    def pieces(self, text: str) -> list[str]:
        """Content pieces for text, without special tokens."""
        normalized = normalize_text(text, self.lowercase, self.remove_accents)
        result: list[str] = []
        for token in pre_tokenize(normalized):
            result.extend(wordpiece(token, self.vocab, self.max_input_chars_per_word))
        return result

    def token_ids(self, text: str) -> list[int]:
        """Full [CLS] ... [SEP] id sequence for text, without windowing."""
        ids = [self.vocab.lookup(p) for p in self.pieces(text)]
        return [self.vocab.cls_id, *ids, self.vocab.sep_id]

    def tokenize(self, text: str) -> list[TokenSequence]:
        """Tokenize text into one or more [CLS]/[SEP]-wrapped windows.

        Inputs longer than ``max_length`` are split into windows of
        ``max_length - 2`` content pieces overlapping by 10%.
        """
        pieces = self.pieces(text)
        if len(pieces) + 2 <= self.max_length:
            return [self._wrap(pieces)]

        window = self.max_length - 2
        overlap = int(window * WINDOW_OVERLAP_RATIO)
        stride = window - overlap

        windows = []
        for start in range(0, len(pieces), stride):
            windows.append(self._wrap(pieces[start:start + window]))
            if start + window >= len(pieces):
                break
        return windows

    def _wrap(self, pieces: list[str]) -> TokenSequence:
        tokens = (CLS_TOKEN, *pieces, SEP_TOKEN)
        ids = (self.vocab.cls_id, *(self.vocab.lookup(p) for p in pieces), self.vocab.sep_id)
        return TokenSequence(tokens=tokens, ids=ids)
