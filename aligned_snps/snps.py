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


SNPs of every sequence in an alignment relative to a reference.

Queries are decoded and compared in parallel worker processes and may finish
in any order. A single OrderedWriter on the coordinating process restores the
input order before anything is written.
"""

import logging
import timeit
from multiprocessing import Pool

from tqdm import tqdm

from .comparison import compare, format_snps
from .config import DEFAULT_RUN_OPTIONS, resolve_workers
from .fasta import decode_record, load_reference, read_fasta

SNPS_HEADER = "query,SNPs\n"


class OrderedWriter:
    """
    Write indexed results in strict index order as they become available.

    Results may be added in any order. Each is held until every lower index
    has been written, then flushed together with any contiguous run of held
    results that follows it.
    """

    def __init__(self, write, start=0):
        self._write = write
        self._pending = {}
        self.next_index = start
        self.written = 0

    @property
    def pending(self):
        """Number of results held back waiting for an earlier index."""
        return len(self._pending)

    def add(self, index, line):
        if index < self.next_index or index in self._pending:
            raise ValueError(f"Result {index} was already added")
        self._pending[index] = line
        while self.next_index in self._pending:
            self._write(self._pending.pop(self.next_index))
            self.next_index += 1
            self.written += 1

    def close(self):
        """Check that nothing is left unwritten."""
        if self._pending:
            raise RuntimeError(
                f"{len(self._pending)} results still waiting for result {self.next_index}"
            )


def snp_line(record, reference_codes):
    """
    Compare one raw query record against the reference.

    Args:
        record (tuple): (index, name, sequence) as read from the input
        reference_codes (numpy.ndarray): Encoded reference

    Returns:
        tuple: (index, output line)
    """
    index, name, text = record
    query = decode_record(index, name, text, width=reference_codes.size)
    result = compare(reference_codes, query)
    return index, f"{name},{format_snps(result.differences)}\n"


# Per-process state, set once by the pool initializer
_reference_codes = None


def _init_worker(reference_codes):
    global _reference_codes
    _reference_codes = reference_codes


def _process_record(record):
    return snp_line(record, _reference_codes)


def find_snps(reference, alignment, out, options=None):
    """
    Write the SNPs of each alignment sequence relative to a reference.

    Only the first sequence of the reference input is used. Each output row is
    the query name followed by a '|'-joined list of <ref><position><query>
    entries, in the same order as the alignment input.

    Args:
        reference: FASTA handle or path holding the reference
        alignment: FASTA handle or path holding the query alignment
        out: Writable text handle
        options (RunOptions, optional): Worker settings. Defaults to DEFAULT_RUN_OPTIONS.

    Returns:
        int: Number of rows written (excluding the header)

    Raises:
        EmptyInputError: If the reference input holds no sequence
        AlignmentWidthError: If a query differs in width from the reference
        UnsupportedSymbolError: If any sequence holds an unsupported character
    """
    if options is None:
        options = DEFAULT_RUN_OPTIONS

    start_time = timeit.default_timer()

    reference_seq = load_reference(reference)
    reference_codes = reference_seq.codes
    logging.info(f"Reference {reference_seq.name} has {len(reference_seq)} columns")

    records = ((index, name, text) for index, (name, text) in enumerate(read_fasta(alignment)))

    workers = resolve_workers(options.workers)
    logging.info(f"Will run {workers} worker processes")

    out.write(SNPS_HEADER)
    writer = OrderedWriter(out.write)

    with tqdm(desc="Finding SNPs", unit="seq", disable=not options.progress) as pbar:
        if workers == 1:
            for record in records:
                writer.add(*snp_line(record, reference_codes))
                pbar.update(1)
        else:
            with Pool(processes=workers, initializer=_init_worker, initargs=(reference_codes,)) as pool:
                for index, line in pool.imap_unordered(_process_record, records, chunksize=options.chunksize):
                    writer.add(index, line)
                    pbar.update(1)

    writer.close()

    elapsed = timeit.default_timer() - start_time
    logging.info(f"Wrote {writer.written} rows in {elapsed:.2f} seconds")
    return writer.written
