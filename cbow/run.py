import argparse
import logging
from itertools import islice

from cbow.corpus_utils import build_loader_from_file, build_loader_from_text
from cbow.data import DEFAULT_WINDOW_SIZE, cbow_batches

# Entry point: build CBOW windows from the demo corpus or a file and show what a
# training loop would receive. Usage: python -m cbow.run [--file path]

DEMO_TEXT = """
the quick brown fox jumps over the lazy dog
the dog and the fox are animals
quick animals jump over lazy dogs
brown foxes and lazy dogs
the quick brown fox runs
the lazy dog sleeps in the warm sun
"""


def _words(loader, ids) -> str:
    return " ".join(loader.word_from_index(int(i)) or "?" for i in ids)


def main():
    """Build a loader, print vocabulary stats, sample windows and a worker partitioning."""
    ap = argparse.ArgumentParser()
    ap.add_argument("--text", type=str, default=None, help="Use this string as the corpus")
    ap.add_argument("--file", type=str, default=None, help="Read corpus from file")
    ap.add_argument("--window", type=int, default=DEFAULT_WINDOW_SIZE)
    ap.add_argument(
        "--min-count", type=int, default=None, help="Drop words seen fewer times than this"
    )
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--shuffle", action="store_true", help="Shuffle sentences before reading")
    ap.add_argument("--show", type=int, default=5, help="Number of windows to print")
    ap.add_argument("--workers", type=int, default=2)
    ap.add_argument("--batch-size", type=int, default=4)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.file:
        loader = build_loader_from_file(
            args.file, window_size=args.window, min_count=args.min_count, seed=args.seed
        )
    else:
        loader = build_loader_from_text(
            args.text or DEMO_TEXT,
            window_size=args.window,
            min_count=args.min_count,
            seed=args.seed,
        )
    if args.shuffle:
        loader.reset()

    print(f"Vocab size {loader.vocab_size()}, sentences {len(loader.corpus)}, windows {loader.size()}")

    for context, label in islice(loader.cursor(), args.show):
        print(f"  [{_words(loader, context)}] -> {loader.word_from_index(label)}")

    for worker, (cursor, count) in enumerate(loader.worker_cursors(args.workers)):
        start = cursor.position
        batches = list(cbow_batches(cursor, args.batch_size, limit=count))
        print(f"Worker {worker}: start {start}, {count} windows in {len(batches)} batches")


if __name__ == "__main__":
    main()
