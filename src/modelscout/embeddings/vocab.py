"""Vocabulary and tokenizer-config loading from HuggingFace tokenizer assets."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from modelscout.errors import ModelCorrupted


CLS_TOKEN = "[CLS]"
SEP_TOKEN = "[SEP]"
UNK_TOKEN = "[UNK]"
PAD_TOKEN = "[PAD]"
REQUIRED_SPECIAL_TOKENS = (CLS_TOKEN, SEP_TOKEN, UNK_TOKEN)


class Vocabulary:
    """Immutable token -> id table with BERT special tokens."""

    def __init__(self, token_to_id: Mapping[str, int]):
        missing = [t for t in REQUIRED_SPECIAL_TOKENS if t not in token_to_id]
        if missing:
            raise ModelCorrupted(f"vocabulary is missing special tokens: {', '.join(missing)}")

        seen: dict[int, str] = {}
        for token, token_id in token_to_id.items():
            if not _is_int(token_id) or token_id < 0:
                raise ModelCorrupted(f"token {token!r} has invalid id {token_id!r}")
            if token_id in seen:
                raise ModelCorrupted(
                    f"tokens {seen[token_id]!r} and {token!r} share id {token_id}"
                )
            seen[token_id] = token

        self._tokens = MappingProxyType(dict(token_to_id))
        self.cls_id = self._tokens[CLS_TOKEN]
        self.sep_id = self._tokens[SEP_TOKEN]
        self.unk_id = self._tokens[UNK_TOKEN]
        self.pad_id = self._tokens.get(PAD_TOKEN, 0)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "Vocabulary":
        """Build a vocabulary from parsed JSON, discarding non-integer entries."""
        return cls({token: value for token, value in raw.items() if _is_int(value)})

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def lookup(self, token: str) -> int:
        """Return the id of token, or the [UNK] id on a miss."""
        return self._tokens.get(token, self.unk_id)

    def as_mapping(self) -> Mapping[str, int]:
        return self._tokens


@dataclass(frozen=True)
class TokenizerConfig:
    """Normalization options read from tokenizer_config.json."""
    lowercase: bool = True
    strip_accents: bool = True
    model_max_length: int | None = None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ModelCorrupted(f"invalid JSON: {e}", path) from e


def load_vocabulary(path: Path) -> Vocabulary:
    """Parse tokenizer.json and return its WordPiece vocabulary.

    The vocabulary must be a non-empty object under ``model.vocab``.
    """
    data = _read_json(path)
    model = data.get("model") if isinstance(data, dict) else None
    vocab = model.get("vocab") if isinstance(model, dict) else None
    if not isinstance(vocab, dict) or not vocab:
        raise ModelCorrupted("invalid tokenizer structure: missing model.vocab", path)

    try:
        return Vocabulary.from_raw(vocab)
    except ModelCorrupted as e:
        raise ModelCorrupted(e.message, path) from e


def load_tokenizer_config(path: Path) -> TokenizerConfig:
    """Parse tokenizer_config.json.

    ``strip_accents`` of null follows ``do_lower_case``, as in BERT.
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ModelCorrupted("tokenizer config must be a JSON object", path)

    lowercase = bool(data.get("do_lower_case", True))
    strip_accents = data.get("strip_accents")
    max_length = data.get("model_max_length")
    return TokenizerConfig(
        lowercase=lowercase,
        strip_accents=lowercase if strip_accents is None else bool(strip_accents),
        # Some configs use a huge sentinel for "unbounded"
        model_max_length=max_length if _is_int(max_length) and 0 < max_length < 1_000_000 else None,
    )
