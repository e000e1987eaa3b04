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


Pairwise comparison of encoded sequences.

Every column of a pair falls into exactly one class:

- different: the calls share no base, (x & y) < 16. Counted in the distance
  numerator and denominator and reported as a SNP.
- same: both sides carry the identical unambiguous call. Counted in the
  denominator only.
- uninformative: anything else (an ambiguity code or placeholder that overlaps
  the other call, or two identical ambiguity codes). Ignored entirely.

distance = different / (different + same), NaN when nothing is informative.
"""

from dataclasses import dataclass

import numpy as np

from .encoding import DIFFERENCE_THRESHOLD, UNAMBIGUOUS_FLAG, SYMBOLS
from .errors import AlignmentWidthError

# Rows of the target matrix compared against a query per numpy operation
TARGET_BLOCK_ROWS = 256


@dataclass(frozen=True)
class Difference:
    """A single differing column.

    Fields:
        position: 1-based alignment column
        first: Base call of the first sequence compared
        second: Base call of the second sequence compared
    """
    position: int
    first: str
    second: str


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of comparing two equal-width sequences.

    Fields:
        distance: different / (different + same), NaN if that denominator is 0
        differences: Differing columns in ascending position order
        same: Number of columns with identical unambiguous calls
        uninformative: Number of columns that took no part in the distance
    """
    distance: float
    differences: tuple
    same: int
    uninformative: int

    @property
    def snp_count(self):
        return len(self.differences)


def _codes(seq):
    return np.asarray(getattr(seq, 'codes', seq), dtype=np.uint8)


def classify(x, y):
    """
    Classify each column of a pair of code arrays.

    Returns:
        tuple: (different, same) boolean arrays; columns set in neither are
               uninformative. The two masks never overlap.
    """
    different = (x & y) < DIFFERENCE_THRESHOLD
    same = ((x & UNAMBIGUOUS_FLAG) == UNAMBIGUOUS_FLAG) & (x == y)
    return different, same


def _checked_pair(first, second):
    x = _codes(first)
    y = _codes(second)
    if x.shape != y.shape:
        raise AlignmentWidthError(
            f"Cannot compare sequences of different widths: {x.size} and {y.size}"
        )
    return x, y


def _ratio(differences, same):
    denominator = differences + same
    if denominator == 0:
        return float('nan')
    return differences / denominator


def compare(first, second):
    """
    Compare two encoded sequences column by column.

    Args:
        first: EncodedSequence or code array (reference, or query in closest mode)
        second: EncodedSequence or code array of the same width

    Returns:
        ComparisonResult: Distance and the full list of differing columns.
            Each Difference lists the base of first, then the base of second.

    Raises:
        AlignmentWidthError: If the sequences differ in width
    """
    x, y = _checked_pair(first, second)
    different, same = classify(x, y)

    positions = np.flatnonzero(different)
    differences = tuple(
        Difference(int(pos) + 1, SYMBOLS[int(x[pos])], SYMBOLS[int(y[pos])])
        for pos in positions
    )
    n_different = len(differences)
    n_same = int(np.count_nonzero(same))

    return ComparisonResult(
        distance=_ratio(n_different, n_same),
        differences=differences,
        same=n_same,
        uninformative=x.size - n_different - n_same,
    )


def distance(first, second):
    """Distance between two sequences without building the SNP list (NaN if undefined)."""
    x, y = _checked_pair(first, second)
    different, same = classify(x, y)
    return _ratio(int(np.count_nonzero(different)), int(np.count_nonzero(same)))


def distances(query, targets):
    """
    Distance from one query to every row of a target code matrix.

    Args:
        query: EncodedSequence or 1-D code array
        targets (numpy.ndarray): 2-D array, one target per row

    Returns:
        numpy.ndarray: float64 distances, NaN where undefined
    """
    y = _codes(query)
    if targets.shape[0] and targets.shape[1] != y.size:
        raise AlignmentWidthError(
            f"Query has {y.size} columns but targets have {targets.shape[1]}"
        )

    result = np.empty(targets.shape[0], dtype=np.float64)
    for start in range(0, targets.shape[0], TARGET_BLOCK_ROWS):
        block = targets[start:start + TARGET_BLOCK_ROWS]
        different, same = classify(block, y)
        n_different = different.sum(axis=1)
        denominator = n_different + same.sum(axis=1)
        with np.errstate(divide='ignore', invalid='ignore'):
            result[start:start + len(block)] = np.where(
                denominator > 0, n_different / np.maximum(denominator, 1), np.nan
            )
    return result


def format_snps(differences):
    """Render differences as '|'-joined <first><position><second> entries, e.g. 'C2G|T9A'."""
    return '|'.join(f"{d.first}{d.position}{d.second}" for d in differences)


def format_closest_snps(differences):
    """Render differences as ';'-joined <position><first><second> entries, e.g. '4AT;9CG'."""
    return ';'.join(f"{d.position}{d.first}{d.second}" for d in differences)
