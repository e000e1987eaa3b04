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


Reading FASTA alignments into encoded sequences.
"""

import logging
from dataclasses import dataclass

import numpy as np
from Bio import SeqIO

from .encoding import encode_sequence
from .errors import AlignmentWidthError, EmptyInputError, FastaFormatError


@dataclass(frozen=True, eq=False)
class EncodedSequence:
    """One alignment row after encoding.

    Fields:
        name: Record identifier (first word of the FASTA header)
        codes: Read-only uint8 array of nucleotide codes, one per column
        index: 0-based position of the record in its input stream, the only
               key used to restore input order after parallel processing
    """
    name: str
    codes: np.ndarray
    index: int

    def __len__(self):
        return len(self.codes)


def read_fasta(handle):
    """
    Yield (name, sequence) pairs from a FASTA handle in file order.

    Args:
        handle: Open text handle or path accepted by Bio.SeqIO

    Raises:
        FastaFormatError: If the input is not UTF-8 text or Biopython cannot
            parse it as FASTA
    """
    source = getattr(handle, "name", "input")
    try:
        for record in SeqIO.parse(handle, "fasta"):
            yield record.id, str(record.seq)
    except UnicodeDecodeError as e:
        raise FastaFormatError(f"{source} is not valid UTF-8 text: {e.reason} at byte {e.start}") from e
    except ValueError as e:
        raise FastaFormatError(f"{source} is not valid FASTA: {e}") from e


def decode_record(index, name, text, width=None):
    """
    Encode one record, optionally enforcing an expected alignment width.

    Raises:
        UnsupportedSymbolError: If the sequence holds an unsupported character
        AlignmentWidthError: If width is given and the sequence length differs
    """
    if width is not None and len(text) != width:
        raise AlignmentWidthError(
            f"Sequence {name} has {len(text)} columns, expected {width}"
        )
    return EncodedSequence(name, encode_sequence(text, name), index)


def decode_records(records, width=None):
    """
    Encode (name, sequence) pairs, numbering them in arrival order from 0.

    The first record fixes the alignment width unless width is given; every
    later record must match it.

    Args:
        records: Iterable of (name, sequence) pairs
        width (int, optional): Required column count

    Yields:
        EncodedSequence
    """
    for index, (name, text) in enumerate(records):
        if width is None:
            width = len(text)
        yield decode_record(index, name, text, width)


def load_alignment(handle, width=None):
    """
    Read and encode a whole alignment into memory.

    Returns:
        list[EncodedSequence]: Rows in file order

    Raises:
        EmptyInputError: If the alignment holds no records
    """
    sequences = list(decode_records(read_fasta(handle), width))
    if not sequences:
        raise EmptyInputError("Alignment contains no sequences")
    logging.debug(f"Loaded {len(sequences)} sequences of width {len(sequences[0])}")
    return sequences


def load_reference(handle):
    """
    Read and encode the first record of a FASTA input; later records are ignored.

    Raises:
        EmptyInputError: If the input holds no records
    """
    for name, text in read_fasta(handle):
        return decode_record(0, name, text)
    raise EmptyInputError("Reference input contains no sequences")


def stack_codes(sequences):
    """Stack equal-width encoded sequences into a read-only 2-D code matrix."""
    matrix = np.vstack([seq.codes for seq in sequences]) if sequences else np.empty((0, 0), dtype=np.uint8)
    matrix.flags.writeable = False
    return matrix
