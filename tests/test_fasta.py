#!/usr/bin/env python3
"""
Tests for reading and encoding FASTA alignments.
"""

from io import StringIO

import pytest
from aligned_snps import (
    AlignmentWidthError,
    EmptyInputError,
    FastaFormatError,
    UnsupportedSymbolError,
    decode_records,
    load_alignment,
    load_reference,
    read_fasta,
)
from aligned_snps.fasta import decode_record, stack_codes

ALIGNMENT = """>seq1 first sequence
ACGT
>seq2
AC
GT
>seq3
acgn
"""


class TestReadFasta:
    """Test raw record reading."""

    def test_names_and_sequences(self):
        """Records come back in file order, named by the first header word."""
        records = list(read_fasta(StringIO(ALIGNMENT)))
        assert records == [("seq1", "ACGT"), ("seq2", "ACGT"), ("seq3", "acgn")]

    def test_undecodable_bytes(self, tmp_path):
        """Bytes that are not UTF-8 raise FastaFormatError naming the file."""
        path = tmp_path / "bad.fasta"
        path.write_bytes(b">q\nAC\xffT\n")
        with open(path, encoding="utf-8") as handle:
            with pytest.raises(FastaFormatError, match="bad.fasta is not valid UTF-8"):
                list(read_fasta(handle))

    def test_format_error_is_value_error(self):
        """FastaFormatError can be caught as ValueError."""
        assert issubclass(FastaFormatError, ValueError)


class TestDecodeRecords:
    """Test encoding of record streams."""

    def test_indices_follow_input_order(self):
        """Indices are assigned 0, 1, 2, ... in arrival order."""
        sequences = list(decode_records([("b", "AC"), ("a", "GT"), ("c", "TT")]))
        assert [s.index for s in sequences] == [0, 1, 2]
        assert [s.name for s in sequences] == ["b", "a", "c"]

    def test_first_record_sets_width(self):
        """A record wider than the first fails the whole decode."""
        with pytest.raises(AlignmentWidthError, match="s2 has 5 columns, expected 4"):
            list(decode_records([("s1", "ACGT"), ("s2", "ACGTA")]))

    def test_explicit_width(self):
        """An explicit width applies to the first record too."""
        with pytest.raises(AlignmentWidthError):
            list(decode_records([("s1", "ACGT")], width=5))

    def test_unsupported_symbol_names_record(self):
        """Bad characters are reported with their record name."""
        with pytest.raises(UnsupportedSymbolError, match="in bad at position 2"):
            list(decode_records([("ok", "ACGT"), ("bad", "AXGT")]))

    def test_decode_record(self):
        """A single record keeps the index it was given."""
        seq = decode_record(7, "q", "ACGT")
        assert seq.index == 7
        assert len(seq) == 4


class TestLoading:
    """Test whole-alignment and reference loading."""

    def test_load_alignment(self):
        """All records are loaded and encoded."""
        sequences = load_alignment(StringIO(ALIGNMENT))
        assert [s.name for s in sequences] == ["seq1", "seq2", "seq3"]
        assert sequences[2].codes.tolist() == [136, 40, 72, 240]

    def test_load_alignment_width_mismatch(self):
        """Uneven alignments are rejected."""
        with pytest.raises(AlignmentWidthError):
            load_alignment(StringIO(">a\nACGT\n>b\nACG\n"))

    def test_load_alignment_empty(self):
        """An empty alignment is an error."""
        with pytest.raises(EmptyInputError):
            load_alignment(StringIO(""))

    def test_load_reference_uses_first_record(self):
        """Only the first reference record is used; the rest are never decoded."""
        ref = load_reference(StringIO(">ref\nACGT\n>other\nXXXXXXX\n"))
        assert ref.name == "ref"
        assert ref.index == 0
        assert len(ref) == 4

    def test_load_reference_empty(self):
        """A reference input with no records is an error."""
        with pytest.raises(EmptyInputError):
            load_reference(StringIO(""))

    def test_stack_codes(self):
        """Sequences stack into a read-only matrix, one row each."""
        matrix = stack_codes(load_alignment(StringIO(ALIGNMENT)))
        assert matrix.shape == (3, 4)
        assert not matrix.flags.writeable
