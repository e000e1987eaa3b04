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


Bit-packed nucleotide encoding.

Each alignment column is stored as one byte. The high nibble is a subset mask
over the four bases (A=128, G=64, C=32, T=16), so the bitwise AND of two codes
is the set of bases both calls are compatible with. Bit 8 flags an unambiguous
call (a single base). The low bits tell the gap and unknown placeholders apart
from N, which otherwise share its all-bases mask.

Because any two compatible calls share at least one base bit (>= 16), two
codes describe incompatible calls exactly when (x & y) < 16.
"""

import numpy as np

from .errors import UnsupportedSymbolError

BASE_BITS = {'A': 128, 'G': 64, 'C': 32, 'T': 16}
UNAMBIGUOUS_FLAG = 8
DIFFERENCE_THRESHOLD = 16

# IUPAC nucleotide ambiguity codes
IUPAC_CODES = {
    'A': {'A'},
    'G': {'G'},
    'C': {'C'},
    'T': {'T'},
    'R': {'A', 'G'},      # puRine
    'M': {'A', 'C'},      # aMino
    'W': {'A', 'T'},      # Weak (2 H bonds)
    'S': {'G', 'C'},      # Strong (3 H bonds)
    'K': {'G', 'T'},      # Keto
    'Y': {'C', 'T'},      # pYrimidine
    'V': {'A', 'C', 'G'}, # not T
    'H': {'A', 'C', 'T'}, # not G
    'D': {'A', 'G', 'T'}, # not C
    'B': {'C', 'G', 'T'}, # not A
    'N': {'A', 'C', 'G', 'T'}, # aNy
}

# Placeholders compatible with every base but carrying no information
GAP_CODE = 244       # '-'
UNKNOWN_CODE = 242   # '?'


def _build_code_table():
    table = {}
    for symbol, bases in IUPAC_CODES.items():
        code = sum(BASE_BITS[base] for base in bases)
        if len(bases) == 1:
            code |= UNAMBIGUOUS_FLAG
        table[symbol] = code
    table['-'] = GAP_CODE
    table['?'] = UNKNOWN_CODE
    return table


NUCLEOTIDE_CODES = _build_code_table()
SYMBOLS = {code: symbol for symbol, code in NUCLEOTIDE_CODES.items()}

# Completeness contribution: confident calls score highest, N and placeholders nothing
_SCORES_BY_BASE_COUNT = {1: 10, 2: 9, 3: 8, 4: 0}
SCORES = {NUCLEOTIDE_CODES[symbol]: _SCORES_BY_BASE_COUNT[len(bases)]
          for symbol, bases in IUPAC_CODES.items()}
SCORES[GAP_CODE] = 0
SCORES[UNKNOWN_CODE] = 0

# 0 is never a valid code, so it marks unsupported bytes in the lookup tables
_ENCODE_LUT = np.zeros(256, dtype=np.uint8)
for _symbol, _code in NUCLEOTIDE_CODES.items():
    _ENCODE_LUT[ord(_symbol)] = _code
    _ENCODE_LUT[ord(_symbol.lower())] = _code

_SCORE_LUT = np.zeros(256, dtype=np.int64)
for _code, _score in SCORES.items():
    _SCORE_LUT[_code] = _score


def encode(char):
    """
    Encode a single nucleotide symbol.

    Args:
        char (str): IUPAC nucleotide code, '-' or '?', in either case

    Returns:
        int: Nucleotide code

    Raises:
        UnsupportedSymbolError: If char is not a recognised symbol
    """
    code = NUCLEOTIDE_CODES.get(char.upper()) if len(char) == 1 and char.isascii() else None
    if code is None:
        raise UnsupportedSymbolError(f"Unsupported nucleotide symbol: {char!r}")
    return code


def decode(code):
    """
    Decode a nucleotide code back to its upper-case symbol.

    Examples:
        >>> decode(encode('g'))
        'G'
    """
    try:
        return SYMBOLS[int(code)]
    except KeyError:
        raise ValueError(f"Not a nucleotide code: {code}") from None


def score(code):
    """Completeness score of one code: 10 for a base, 9/8 for 2/3-base ambiguities, else 0."""
    try:
        return SCORES[int(code)]
    except KeyError:
        raise ValueError(f"Not a nucleotide code: {code}") from None


def encode_sequence(text, name=None):
    """
    Encode a sequence string into a read-only array of nucleotide codes.

    Args:
        text (str): Sequence, one character per alignment column
        name (str, optional): Record name, used in error messages

    Returns:
        numpy.ndarray: uint8 codes, one per column

    Raises:
        UnsupportedSymbolError: If any character is outside the alphabet.
            The message names the record and the 1-based position of the
            first offending character.
    """
    if not text.isascii():
        position = next(i for i, char in enumerate(text) if not char.isascii())
        raise _unsupported(text, position, name)

    codes = _ENCODE_LUT[np.frombuffer(text.encode('ascii'), dtype=np.uint8)]
    invalid = np.flatnonzero(codes == 0)
    if invalid.size:
        raise _unsupported(text, int(invalid[0]), name)

    codes.flags.writeable = False
    return codes


def _unsupported(text, position, name):
    where = f" in {name}" if name is not None else ""
    return UnsupportedSymbolError(
        f"Unsupported nucleotide symbol {text[position]!r}{where} at position {position + 1}"
    )


def decode_sequence(codes):
    """Decode an array of nucleotide codes back to a string."""
    return ''.join(SYMBOLS[int(code)] for code in codes)


def completeness(codes):
    """
    Sum the completeness scores of a sequence.

    Higher values mean more confident base calls. Only ever used to break
    ties between equally distant targets.
    """
    codes = getattr(codes, 'codes', codes)
    return int(_SCORE_LUT[np.asarray(codes, dtype=np.uint8)].sum())


def completeness_scores(sequences):
    """Completeness score of each sequence, in order, as an int64 array."""
    return np.array([completeness(seq) for seq in sequences], dtype=np.int64)
