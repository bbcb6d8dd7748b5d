import logging
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from cbow.vocab import Vocabulary, preprocess_string

# Data pipeline for CBOW: index-encoded sentences, per-worker window cursors,
# flat-offset partitioning and frequency pruning. A sentence of length L yields
# exactly L - 2 * window_size windows; every position rule below derives from that.

log = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 2


class Corpus:
    """Immutable snapshot of index-encoded sentences for one window size.

    Attributes:
        sentences (tuple): Read-only int64 arrays, one per sentence, in scan order.
        window_size (int): Context words taken from each side of a center word.
        windows (np.ndarray): windows[s] is the number of windows sentence s yields.
        starts (np.ndarray): starts[s] is the flat offset of sentence s's first window.
    """

    def __init__(self, sentences: Sequence[np.ndarray], window_size: int):
        arrays = []
        for s in sentences:
            arr = np.asarray(s, dtype=np.int64)
            arr.setflags(write=False)
            arrays.append(arr)
        self.sentences: Tuple[np.ndarray, ...] = tuple(arrays)
        self.window_size = window_size
        self.windows = np.array(
            [max(0, len(s) - 2 * window_size) for s in self.sentences], dtype=np.int64
        )
        self.starts = np.cumsum(self.windows) - self.windows
        self.windows.setflags(write=False)
        self.starts.setflags(write=False)

    def __len__(self) -> int:
        return len(self.sentences)

    def size(self) -> int:
        """Total number of windows the corpus yields."""
        return int(self.windows.sum())

    def locate(self, offset: int) -> Tuple[int, int]:
        """Map a flat window offset to (sentence_index, word_index).

        Args:
            offset: Non-negative flat offset; reduced modulo size().

        Returns:
            Cursor position of the window that a natural scan reaches at that offset.

        Raises:
            ValueError: If offset is negative or the corpus yields no windows.
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        size = self.size()
        if size == 0:
            raise ValueError("cannot position a cursor in an empty corpus")
        o = offset % size
        # Last sentence whose first window is at or before o; zero-window
        # sentences share a start with their successor and are skipped by side="right".
        s = int(np.searchsorted(self.starts, o, side="right")) - 1
        return s, int(o - self.starts[s])

    def permuted(self, rng: np.random.Generator) -> "Corpus":
        """Return a new snapshot with sentence order shuffled (word order kept)."""
        order = rng.permutation(len(self.sentences))
        return Corpus([self.sentences[i] for i in order], self.window_size)


class WindowCursor:
    """Traversal state (sentence_index, word_index) over a Corpus snapshot.

    Each worker owns its own cursor; cursors never mutate the corpus, so any
    number of them may read the same snapshot.
    """

    def __init__(self, corpus: Corpus, offset: Optional[int] = None):
        self.corpus = corpus
        self.sentence_index = 0
        self.word_index = 0
        if offset is not None:
            self.set_offset(offset)

    @property
    def window_size(self) -> int:
        return self.corpus.window_size

    @property
    def position(self) -> Tuple[int, int]:
        return self.sentence_index, self.word_index

    def rewind(self) -> None:
        self.sentence_index = 0
        self.word_index = 0

    def set_offset(self, offset: int) -> None:
        """Reposition at the (offset mod size)-th window of the current scan order."""
        self.sentence_index, self.word_index = self.corpus.locate(offset)

    def is_done(self) -> bool:
        windows = self.corpus.windows
        s, w = self.sentence_index, self.word_index
        while s < len(windows):
            if w < windows[s]:
                return False
            s, w = s + 1, 0
        return True

    def _settle(self) -> None:
        # Skip past positions that cannot start a window (e.g. after a rebind).
        windows = self.corpus.windows
        while (
            self.sentence_index < len(windows)
            and self.word_index >= windows[self.sentence_index]
        ):
            self.sentence_index += 1
            self.word_index = 0

    def get_next(self, out=None) -> Tuple[np.ndarray, int]:
        """Return the (context, label) pair at the cursor and advance by one window.

        Context is the window_size indices before the center word followed by the
        window_size indices after it; label is the center word's index.

        Args:
            out: Optional index-assignable buffer of length 2 * window_size to fill
                with the context. Defaults to None (a new int64 array).

        Returns:
            Tuple (context, label).

        Raises:
            RuntimeError: If the cursor is exhausted.
        """
        if self.is_done():
            raise RuntimeError(
                "get_next() called on an exhausted cursor; rewind or set_offset first"
            )
        self._settle()
        k = self.corpus.window_size
        sentence = self.corpus.sentences[self.sentence_index]
        w = self.word_index
        if out is None:
            out = np.empty(2 * k, dtype=np.int64)
        for i in range(k):
            out[i] = sentence[w + i]
            out[i + k] = sentence[w + k + 1 + i]
        label = int(sentence[w + k])

        self.word_index += 1
        if self.word_index >= self.corpus.windows[self.sentence_index]:
            self.sentence_index += 1
            self.word_index = 0
        return out, label

    def __iter__(self) -> Iterator[Tuple[np.ndarray, int]]:
        while not self.is_done():
            yield self.get_next()


class CBOWLoader:
    """CBOW data loader: ingests raw sentences and yields (context, label) windows.

    Ingestion and pruning are single-writer operations. For parallel reading,
    hand each worker its own cursor (see cursor() and worker_cursors()) once
    ingestion is finished.

    Attributes:
        window_size (int): Context words on each side; fixed for the loader's lifetime.
        min_sentence_length (int): 2 * window_size + 1; shorter sentences are rejected.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE, seed: Optional[int] = None):
        """Create an empty loader.

        Args:
            window_size: Context words taken from each side of a center word. Must be >= 1.
            seed: Seed for the shuffle used by reset(). Defaults to None (OS entropy).

        Raises:
            ValueError: If window_size < 1.
        """
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size
        self.min_sentence_length = 2 * window_size + 1
        self._rng = np.random.default_rng(seed)
        self._vocab = Vocabulary()
        self._sentences: List[np.ndarray] = []
        self._corpus: Optional[Corpus] = None
        self._cursor = WindowCursor(self.corpus)

    @property
    def corpus(self) -> Corpus:
        """Current corpus snapshot (rebuilt lazily after ingestion)."""
        if self._corpus is None:
            self._corpus = Corpus(self._sentences, self.window_size)
        return self._corpus

    @property
    def vocab(self) -> Vocabulary:
        return self._vocab

    def _own_cursor(self) -> WindowCursor:
        corpus = self.corpus
        if self._cursor.corpus is not corpus:
            cursor = WindowCursor(corpus)
            cursor.sentence_index, cursor.word_index = self._cursor.position
            self._cursor = cursor
        return self._cursor

    def add_data(self, text: str) -> bool:
        """Tokenize text and append it as a sentence.

        Args:
            text: Raw sentence.

        Returns:
            False (and no state change) if the sentence has fewer than
            2 * window_size + 1 tokens, True otherwise.
        """
        tokens = preprocess_string(text)
        if len(tokens) < self.min_sentence_length:
            log.debug(
                "Rejected sentence with %d tokens (need %d)",
                len(tokens),
                self.min_sentence_length,
            )
            return False
        self._sentences.append(self._vocab.encode(tokens))
        self._corpus = None
        return True

    def size(self) -> int:
        return self.corpus.size()

    def __len__(self) -> int:
        return self.size()

    def is_done(self) -> bool:
        return self._own_cursor().is_done()

    def reset(self) -> None:
        """Shuffle sentence order and rewind the loader's cursor to the start."""
        self._corpus = self.corpus.permuted(self._rng)
        self._sentences = list(self._corpus.sentences)
        self._cursor = WindowCursor(self._corpus)
        log.info("Shuffled %d sentences", len(self._sentences))

    def set_offset(self, offset: int) -> None:
        """Position the loader's cursor at flat window offset (mod size()).

        Raises:
            ValueError: If offset is negative or the corpus is empty.
        """
        self._own_cursor().set_offset(offset)

    def get_next(self, out=None) -> Tuple[np.ndarray, int]:
        return self._own_cursor().get_next(out)

    def cursor(self, offset: Optional[int] = None) -> WindowCursor:
        """Independent cursor over the current snapshot, optionally positioned at offset."""
        return WindowCursor(self.corpus, offset)

    def worker_cursors(self, num_workers: int) -> List[Tuple[WindowCursor, int]]:
        """One (cursor, count) per worker; together they cover every window once."""
        corpus = self.corpus
        return [
            (WindowCursor(corpus, start), count)
            for start, count in partition_offsets(corpus.size(), num_workers)
        ]

    def vocab_size(self) -> int:
        return len(self._vocab)

    def get_vocab(self) -> Mapping[str, Tuple[int, int]]:
        """Read-only mapping word -> (index, frequency)."""
        return self._vocab.snapshot()

    def word_from_index(self, index: int) -> Optional[str]:
        """Word currently mapped to index, or None if there is none."""
        return self._vocab.word_from_index(index)

    def remove_infrequent(self, min_count: int) -> None:
        """Rebuild vocabulary and corpus keeping only words with frequency >= min_count.

        Indices are reassigned in the order words are met during the rebuild, and
        frequencies are recounted over the surviving sentences. Sentences left with
        fewer than 2 * window_size + 1 words are dropped. The loader switches to the
        new state in one step and its cursor is rewound.

        Args:
            min_count: Minimum frequency a word needs to be kept.

        Raises:
            ValueError: If min_count is negative.
        """
        if min_count < 0:
            raise ValueError(f"min_count must be non-negative, got {min_count}")
        old_vocab = self._vocab
        vocab = Vocabulary()
        sentences = []
        for sentence in self._sentences:
            words = [
                old_vocab.id_to_word[i] for i in sentence if old_vocab.counts[i] >= min_count
            ]
            if len(words) < self.min_sentence_length:
                continue
            sentences.append(vocab.encode(words))
        corpus = Corpus(sentences, self.window_size)
        log.info(
            "Pruned vocabulary %d -> %d words, sentences %d -> %d (min_count=%d)",
            len(old_vocab),
            len(vocab),
            len(self._sentences),
            len(sentences),
            min_count,
        )
        self._vocab, self._sentences, self._corpus, self._cursor = (
            vocab,
            sentences,
            corpus,
            WindowCursor(corpus),
        )


def partition_offsets(size: int, num_workers: int) -> List[Tuple[int, int]]:
    """Split [0, size) into num_workers contiguous (start, count) ranges.

    Args:
        size: Total number of windows (CBOWLoader.size()).
        num_workers: Number of consumers.

    Returns:
        List of (start_offset, count); counts differ by at most one and sum to size.

    Raises:
        ValueError: If num_workers < 1 or size < 0.
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    bounds = [i * size // num_workers for i in range(num_workers + 1)]
    return [(bounds[i], bounds[i + 1] - bounds[i]) for i in range(num_workers)]


def cbow_batches(
    source: Union[CBOWLoader, WindowCursor],
    batch_size: int,
    limit: Optional[int] = None,
) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
    """Yield batches of (contexts, labels) for CBOW training.

    Draws windows from source until it is exhausted or limit windows were read.

    Args:
        source: Loader or cursor to read from (advanced in place).
        batch_size: Number of windows per batch.
        limit: Maximum number of windows to read. Defaults to None (until exhausted).

    Yields:
        Tuples (contexts, labels) with shapes (B, 2 * window_size) and (B,); the last
        batch may be smaller than batch_size.

    Raises:
        ValueError: If batch_size < 1.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    width = 2 * source.window_size
    remaining = limit
    while not source.is_done() and (remaining is None or remaining > 0):
        n = batch_size if remaining is None else min(batch_size, remaining)
        contexts = np.empty((n, width), dtype=np.int64)
        labels = np.empty(n, dtype=np.int64)
        filled = 0
        while filled < n and not source.is_done():
            _, labels[filled] = source.get_next(out=contexts[filled])
            filled += 1
        if remaining is not None:
            remaining -= filled
        yield contexts[:filled], labels[:filled]
