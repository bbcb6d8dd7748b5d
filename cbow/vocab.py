import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

# Tokenizer and growable word <-> index mapping. Indices are dense, assigned in
# first-seen order; frequencies count every occurrence seen during ingestion.

_WORD_RE = re.compile(r"[A-Za-z]+")


def preprocess_string(text: str) -> List[str]:
    """Lowercase and split on non-alphabetic characters; keep only letter runs.

    Args:
        text: Raw input string.

    Returns:
        List of token strings (possibly empty, never containing "").
    """
    return [w.lower() for w in _WORD_RE.findall(text)]


class Vocabulary:
    """Bidirectional vocabulary: word -> index dict plus index-ordered word list.

    Attributes:
        word2id (dict): Mapping word -> index.
        id_to_word (list): Words by index; id_to_word[word2id[w]] == w.
        counts (list): counts[i] is the number of occurrences of word i.
    """

    def __init__(self):
        self.word2id: Dict[str, int] = {}
        self.id_to_word: List[str] = []
        self.counts: List[int] = []

    def __len__(self) -> int:
        return len(self.id_to_word)

    def __contains__(self, word: str) -> bool:
        return word in self.word2id

    def encode(self, tokens: Iterable[str]) -> np.ndarray:
        """Map tokens to indices, inserting unseen words and bumping frequencies.

        Args:
            tokens: Token strings, in sentence order.

        Returns:
            One-dimensional int64 array parallel to tokens.
        """
        ids = []
        for w in tokens:
            idx = self.word2id.get(w)
            if idx is None:
                idx = len(self.id_to_word)
                self.word2id[w] = idx
                self.id_to_word.append(w)
                self.counts.append(0)
            self.counts[idx] += 1
            ids.append(idx)
        return np.array(ids, dtype=np.int64)

    def index_of(self, word: str) -> Optional[int]:
        return self.word2id.get(word)

    def word_from_index(self, index: int) -> Optional[str]:
        """Return the word stored at index, or None if no word has that index."""
        if 0 <= index < len(self.id_to_word):
            return self.id_to_word[index]
        return None

    def frequency(self, word: str) -> int:
        idx = self.word2id.get(word)
        return 0 if idx is None else self.counts[idx]

    def snapshot(self) -> Mapping[str, Tuple[int, int]]:
        """Read-only view word -> (index, frequency), detached from later ingestion."""
        return MappingProxyType(
            {w: (i, self.counts[i]) for w, i in self.word2id.items()}
        )

    def counts_array(self) -> np.ndarray:
        """Frequencies as float64, indexed by vocabulary index."""
        return np.asarray(self.counts, dtype=np.float64)
