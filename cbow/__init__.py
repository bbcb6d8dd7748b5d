from cbow.data import CBOWLoader, Corpus, WindowCursor, cbow_batches, partition_offsets
from cbow.vocab import Vocabulary, preprocess_string

# CBOW training-example generation: vocabulary, index-encoded corpus and
# (context, label) windows with offset-based partitioning for parallel readers.

__all__ = [
    "CBOWLoader",
    "Corpus",
    "WindowCursor",
    "Vocabulary",
    "cbow_batches",
    "partition_offsets",
    "preprocess_string",
]
