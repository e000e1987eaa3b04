#!/usr/bin/env python3
"""
Tests for closest-match selection and the parallel batch runner.
"""

import math
from io import StringIO

import numpy as np
import pytest
from aligned_snps import (
    AlignmentWidthError,
    ClosestMatch,
    EmptyInputError,
    RunOptions,
    TargetSet,
    closest_match,
    decode_records,
    find_closest,
    select_closest,
)
from aligned_snps.closest import CLOSEST_HEADER, split_chunks

NAN = math.nan


def targets_from(pairs):
    return TargetSet.from_sequences(list(decode_records(pairs)))


def query_from(name, text):
    return next(decode_records([(name, text)]))


def fasta(pairs):
    return StringIO("".join(f">{name}\n{seq}\n" for name, seq in pairs))


class TestSelectClosest:
    """Test the selection rule."""

    def test_unique_minimum(self):
        """A single minimum wins regardless of completeness."""
        assert select_closest([0.5, 0.1, 0.3], [100, 0, 100]) == 1

    def test_tie_broken_by_completeness(self):
        """Among tied targets the most complete one wins."""
        assert select_closest([0.1, 0.2, 0.1, 0.1], [5, 100, 9, 7]) == 2

    def test_full_tie_takes_first(self):
        """Equal distance and completeness resolve to the first target."""
        for _ in range(5):
            assert select_closest([0.3, 0.1, 0.1, 0.1], [1, 8, 8, 8]) == 1

    def test_zero_distance_tie(self):
        """Completeness still breaks ties at distance zero."""
        assert select_closest([0.0, 0.0], [10, 20]) == 1

    def test_nan_never_beats_defined(self):
        """An undefined distance loses to any defined one."""
        assert select_closest([NAN, 0.9], [100, 0]) == 1

    def test_all_nan_tie(self):
        """When every distance is undefined, completeness decides."""
        assert select_closest([NAN, NAN, NAN], [3, 7, 7]) == 1

    def test_exact_equality(self):
        """Ties are exact; a marginally larger distance is not tied."""
        assert select_closest([0.1 + 1e-12, 0.1], [100, 0]) == 1

    def test_no_targets(self):
        """Selecting from nothing is an error."""
        with pytest.raises(EmptyInputError):
            select_closest([], [])


class TestClosestMatch:
    """Test single-query matching."""

    def test_example(self):
        """AAAA picks AAAT (1 SNP) over AATT (2 SNPs)."""
        targets = targets_from([("t1", "AAAT"), ("t2", "AATT")])
        match = closest_match(query_from("q", "AAAA"), targets)
        assert match.target == "t1"
        assert match.snp_distance == 1
        assert match.to_row() == "q,t1,1,4AT\n"

    def test_completeness_tie_break(self):
        """Equally distant targets are separated by completeness."""
        targets = targets_from([("gappy", "AAN-"), ("full", "AAAC")])
        # Distance to both is 0; 'full' has more confident calls
        match = closest_match(query_from("q", "AANN"), targets)
        assert match.target == "full"

    def test_snp_distance_counts_differences(self):
        """SNP distance is the count of differing columns, query base first."""
        targets = targets_from([("t", "CCGTNN")])
        match = closest_match(query_from("q", "AAGTAC"), targets)
        assert match.snp_distance == 2
        assert [(d.position, d.first, d.second) for d in match.differences] == [(1, 'A', 'C'), (2, 'A', 'C')]

    def test_target_set_scores(self):
        """Target completeness is computed once per target."""
        targets = targets_from([("a", "ACGT"), ("b", "NNNN")])
        assert len(targets) == 2
        assert targets.scores.tolist() == [40, 0]
        assert isinstance(targets.matrix, np.ndarray)


class TestSplitChunks:
    """Test contiguous partitioning of queries."""

    def test_last_chunk_takes_remainder(self):
        assert split_chunks(list(range(7)), 3) == [[0, 1], [2, 3], [4, 5, 6]]

    def test_single_chunk(self):
        assert split_chunks([1, 2], 1) == [[1, 2]]

    def test_one_per_item(self):
        assert split_chunks([1, 2, 3], 3) == [[1], [2], [3]]


class TestFindClosest:
    """End-to-end tests of the batch runner."""

    QUERIES = [(f"q{i}", seq) for i, seq in enumerate(
        ["AAAA", "CCCC", "AATT", "GGGG", "ACGT", "TTTT", "AAAC", "NNNN", "CCGG"])]
    TARGETS = [("tA", "AAAA"), ("tC", "CCCC"), ("tG", "GGGG"), ("tT", "TTTT"), ("tAT", "AATT")]

    def expected_rows(self):
        targets = targets_from(self.TARGETS)
        return [closest_match(query_from(name, seq), targets).to_row() for name, seq in self.QUERIES]

    def test_example(self):
        """The documented example produces the documented row."""
        out = StringIO()
        written = find_closest(fasta([("q", "AAAA")]), fasta([("t1", "AAAT"), ("t2", "AATT")]), out,
                               RunOptions(workers=1))
        assert written == 1
        assert out.getvalue() == CLOSEST_HEADER + "q,t1,1,4AT\n"

    @pytest.mark.parametrize("workers", [1, 2, 4])
    def test_rows_in_input_order(self, workers):
        """Rows come out in query order for any worker count."""
        out = StringIO()
        find_closest(fasta(self.QUERIES), fasta(self.TARGETS), out, RunOptions(workers=workers))
        lines = out.getvalue().splitlines(keepends=True)
        assert lines[0] == CLOSEST_HEADER
        assert lines[1:] == self.expected_rows()

    def test_more_workers_than_queries(self):
        """Worker count is clamped to the number of queries."""
        out = StringIO()
        assert find_closest(fasta(self.QUERIES[:2]), fasta(self.TARGETS), out, RunOptions(workers=8)) == 2

    def test_width_mismatch(self):
        """Query and target alignments of different widths fail before any output."""
        out = StringIO()
        with pytest.raises(AlignmentWidthError):
            find_closest(fasta([("q", "AAAA")]), fasta([("t", "AAAAA")]), out)
        assert out.getvalue() == ""

    def test_empty_target(self):
        """An empty target alignment is an error."""
        with pytest.raises(EmptyInputError):
            find_closest(fasta([("q", "AAAA")]), StringIO(""), StringIO())

    def test_result_is_frozen(self):
        """Match records are immutable."""
        match = ClosestMatch("q", "t", 0, ())
        with pytest.raises(Exception):
            match.target = "other"
