"""
Copyright (c) 2025, Josh Walker

Redistribution and use in source and binary forms, with or without
modification, are permitted provided that the following conditions are met:

1. Redistributions of source code must retain the above copyright notice, this
   list of conditions and the following disclaimer.

2. Redistributions in binary form must reproduce the above copyright notice,
   this list of conditions and the following disclaimer in the documentation
   and/or other materials provided with the distribution.

THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.


Closest-match search of query sequences against a target alignment.

For each query the target at the smallest genetic distance is selected. Ties
on distance are broken by the completeness of the tied targets, and any
remaining tie goes to the target listed first.
"""

import logging
import timeit
from dataclasses import dataclass
from multiprocessing import Pool

import numpy as np
from tqdm import tqdm

from .comparison import compare, distances, format_closest_snps
from .config import DEFAULT_RUN_OPTIONS, resolve_workers
from .encoding import completeness_scores
from .errors import AlignmentWidthError, EmptyInputError
from .fasta import load_alignment, stack_codes

CLOSEST_HEADER = "query,closest,SNPdistance,SNPs\n"


@dataclass(frozen=True, eq=False)
class TargetSet:
    """Read-only target alignment shared by every query comparison.

    Fields:
        names: Target names in input order
        matrix: 2-D uint8 code matrix, one row per target
        scores: Completeness score of each target
    """
    names: tuple
    matrix: np.ndarray
    scores: np.ndarray

    @classmethod
    def from_sequences(cls, sequences):
        """Build a target set, computing completeness scores once."""
        return cls(
            names=tuple(seq.name for seq in sequences),
            matrix=stack_codes(sequences),
            scores=completeness_scores(sequences),
        )

    def __len__(self):
        return len(self.names)


@dataclass(frozen=True)
class ClosestMatch:
    """Closest target for one query.

    Fields:
        query: Query name
        target: Name of the selected target
        snp_distance: Number of differing columns between query and target
        differences: Differences, query base first, target base second
    """
    query: str
    target: str
    snp_distance: int
    differences: tuple

    def to_row(self):
        """Render as a line of the closest CSV output."""
        return f"{self.query},{self.target},{self.snp_distance},{format_closest_snps(self.differences)}\n"


def _min_indices(values):
    """Indices of the minimum, NaN losing to any number and tying with NaN."""
    defined = ~np.isnan(values)
    if not defined.any():
        return np.arange(values.size)
    return np.flatnonzero(values == values[defined].min())


def select_closest(distance_vector, target_scores):
    """
    Pick the index of the closest target.

    Args:
        distance_vector: Distance from the query to each target
        target_scores: Completeness score of each target

    Returns:
        int: Index of the target at minimum distance (exact equality), ties
             going to the highest completeness and then to the lowest index

    Raises:
        EmptyInputError: If there are no targets
    """
    values = np.asarray(distance_vector, dtype=np.float64)
    if values.size == 0:
        raise EmptyInputError("No target sequences to compare against")

    tied = _min_indices(values)
    if tied.size == 1:
        return int(tied[0])

    # argmax returns the first maximum, i.e. the earliest target
    tied_scores = np.asarray(target_scores)[tied]
    return int(tied[np.argmax(tied_scores)])


def closest_match(query, targets):
    """
    Find the closest target to one query.

    Args:
        query (EncodedSequence): Query sequence
        targets (TargetSet): Targets of the same width

    Returns:
        ClosestMatch
    """
    best = select_closest(distances(query, targets.matrix), targets.scores)
    result = compare(query, targets.matrix[best])
    return ClosestMatch(
        query=query.name,
        target=targets.names[best],
        snp_distance=result.snp_count,
        differences=result.differences,
    )


def split_chunks(items, n_chunks):
    """
    Split items into n_chunks contiguous chunks of equal size; the last takes the remainder.

    Examples:
        >>> split_chunks([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4, 5]]
    """
    chunk_size = len(items) // n_chunks
    chunks = []
    for i in range(n_chunks):
        start = i * chunk_size
        end = len(items) if i == n_chunks - 1 else start + chunk_size
        chunks.append(items[start:end])
    return chunks


def closest_rows(queries, targets):
    """Output rows for a run of queries, in the order given."""
    return [closest_match(query, targets).to_row() for query in queries]


# Per-process state, set once by the pool initializer
_targets = None


def _init_worker(targets):
    global _targets
    _targets = targets


def _process_chunk(chunk):
    chunk_id, queries = chunk
    return chunk_id, closest_rows(queries, _targets)


def find_closest(query, target, out, options=None):
    """
    Write the closest target for every query sequence.

    Both alignments are loaded into memory. Queries are split into one
    contiguous chunk per worker process, and rows are written in query input
    order once every chunk has finished.

    Args:
        query: FASTA handle or path holding the query alignment
        target: FASTA handle or path holding the target alignment
        out: Writable text handle
        options (RunOptions, optional): Worker settings. Defaults to DEFAULT_RUN_OPTIONS.

    Returns:
        int: Number of rows written (excluding the header)

    Raises:
        AlignmentWidthError: If query and target alignments differ in width
        EmptyInputError: If either alignment holds no sequences
    """
    if options is None:
        options = DEFAULT_RUN_OPTIONS

    start_time = timeit.default_timer()

    queries = load_alignment(query)
    logging.info(f"number of sequences in query alignment: {len(queries)}")

    target_sequences = load_alignment(target)
    logging.info(f"number of sequences in target alignment: {len(target_sequences)}")

    if len(queries[0]) != len(target_sequences[0]):
        raise AlignmentWidthError(
            f"Query and target alignments are not the same width: "
            f"{len(queries[0])} and {len(target_sequences[0])}"
        )

    targets = TargetSet.from_sequences(target_sequences)

    workers = resolve_workers(options.workers, len(queries))
    logging.info(f"Will run {workers} worker processes")

    chunks = list(enumerate(split_chunks(queries, workers)))
    slots = [None] * len(chunks)

    with tqdm(total=len(queries), desc="Finding closest", unit="seq", disable=not options.progress) as pbar:
        if workers == 1:
            slots[0] = closest_rows(queries, targets)
            pbar.update(len(queries))
        else:
            with Pool(processes=workers, initializer=_init_worker, initargs=(targets,)) as pool:
                for chunk_id, rows in pool.imap_unordered(_process_chunk, chunks):
                    slots[chunk_id] = rows
                    pbar.update(len(rows))

    out.write(CLOSEST_HEADER)
    written = 0
    for rows in slots:
        out.writelines(rows)
        written += len(rows)

    elapsed = timeit.default_timer() - start_time
    logging.info(f"Wrote {written} rows in {elapsed:.2f} seconds")
    return written
