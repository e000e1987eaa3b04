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


Aligned SNPs: nucleotide-level comparison of sequence alignments.

This package computes genetic distances and SNPs between aligned sequences
using a bit-packed nucleotide encoding, and finds the closest sequence in a
target alignment for each query, breaking ties by genome completeness.
Large alignments are processed in parallel worker processes while output
keeps the input order.

Example:
    >>> from aligned_snps import encode_sequence, compare, format_snps
    >>> result = compare(encode_sequence("ACGT"), encode_sequence("AGGT"))
    >>> format_snps(result.differences)
    'C2G'
"""

from .closest import ClosestMatch, TargetSet, closest_match, find_closest, select_closest
from .comparison import (
    ComparisonResult,
    Difference,
    classify,
    compare,
    distance,
    distances,
    format_closest_snps,
    format_snps,
)
from .config import DEFAULT_RUN_OPTIONS, RunOptions
from .encoding import (
    IUPAC_CODES,
    NUCLEOTIDE_CODES,
    completeness,
    completeness_scores,
    decode,
    decode_sequence,
    encode,
    encode_sequence,
    score,
)
from .errors import (
    AlignedSnpsError,
    AlignmentWidthError,
    EmptyInputError,
    FastaFormatError,
    UnsupportedSymbolError,
)
from .fasta import EncodedSequence, decode_records, load_alignment, load_reference, read_fasta
from .snps import OrderedWriter, find_snps

__version__ = "0.1.0"
