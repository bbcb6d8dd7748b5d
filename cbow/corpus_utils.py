import logging
import re
from typing import Iterable, List, Optional

from cbow.data import DEFAULT_WINDOW_SIZE, CBOWLoader

# Build a CBOWLoader from raw text: one sentence per line or per ./!/? terminator.

log = logging.getLogger(__name__)

_SENTENCE_END_RE = re.compile(r"[.!?\n]+")


def split_sentences(text: str) -> List[str]:
    """Split raw text into sentences on newlines and ./!/? runs; drop blank pieces.

    Args:
        text: Raw input string.

    Returns:
        List of stripped, non-empty sentence strings.
    """
    return [s.strip() for s in _SENTENCE_END_RE.split(text) if s.strip()]


def build_loader_from_sentences(
    sentences: Iterable[str],
    window_size: int = DEFAULT_WINDOW_SIZE,
    min_count: Optional[int] = None,
    seed: Optional[int] = None,
) -> CBOWLoader:
    """Feed sentences to a new loader, then optionally prune rare words.

    Args:
        sentences: Raw sentence strings.
        window_size: Context words on each side. Defaults to DEFAULT_WINDOW_SIZE.
        min_count: If set, call remove_infrequent(min_count) after ingestion. Defaults to None.
        seed: Shuffle seed for the loader. Defaults to None.

    Returns:
        The populated loader.
    """
    loader = CBOWLoader(window_size, seed=seed)
    accepted = rejected = 0
    for s in sentences:
        if loader.add_data(s):
            accepted += 1
        else:
            rejected += 1
    log.info(
        "Ingested %d sentences (%d too short), vocab size %d",
        accepted,
        rejected,
        loader.vocab_size(),
    )
    if min_count is not None:
        loader.remove_infrequent(min_count)
    return loader


def build_loader_from_text(
    text: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    min_count: Optional[int] = None,
    seed: Optional[int] = None,
) -> CBOWLoader:
    """Split text into sentences and build a loader from them.

    Args:
        text: Raw text.
        window_size: Context words on each side. Defaults to DEFAULT_WINDOW_SIZE.
        min_count: Optional pruning threshold. Defaults to None.
        seed: Shuffle seed. Defaults to None.

    Returns:
        The populated loader.

    Raises:
        ValueError: If no sentence is long enough for window_size.
    """
    loader = build_loader_from_sentences(
        split_sentences(text), window_size=window_size, min_count=min_count, seed=seed
    )
    if loader.size() == 0:
        raise ValueError(f"No sentence with at least {2 * window_size + 1} words in text")
    return loader


def build_loader_from_file(
    path: str,
    window_size: int = DEFAULT_WINDOW_SIZE,
    min_count: Optional[int] = None,
    seed: Optional[int] = None,
) -> CBOWLoader:
    """Build a loader from a text file (read as a single blob)."""
    with open(path) as f:
        text = f.read()
    return build_loader_from_text(text, window_size=window_size, min_count=min_count, seed=seed)
