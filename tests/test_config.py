#!/usr/bin/env python3
"""
Tests for run options and worker count resolution.
"""

import dataclasses
import os

import pytest
from aligned_snps import DEFAULT_RUN_OPTIONS, RunOptions
from aligned_snps.config import resolve_workers


class TestRunOptions:
    """Test the RunOptions dataclass."""

    def test_defaults(self):
        """Default options use every CPU, small chunks and no progress bar."""
        assert DEFAULT_RUN_OPTIONS.workers == 0
        assert DEFAULT_RUN_OPTIONS.chunksize == 16
        assert DEFAULT_RUN_OPTIONS.progress is False

    def test_validation(self):
        """Negative workers and non-positive chunk sizes are rejected."""
        with pytest.raises(ValueError, match="workers"):
            RunOptions(workers=-1)
        with pytest.raises(ValueError, match="chunksize"):
            RunOptions(chunksize=0)

    def test_immutable(self):
        """Options cannot be changed after construction."""
        options = RunOptions(workers=2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.workers = 3


class TestResolveWorkers:
    """Test worker count resolution."""

    def test_explicit_count(self):
        assert resolve_workers(3) == 3

    def test_zero_means_all_cpus(self):
        assert resolve_workers(0) == (os.cpu_count() or 1)

    def test_clamped_to_workload(self):
        """Never more workers than work items."""
        assert resolve_workers(8, workload=3) == 3

    def test_at_least_one(self):
        """An empty workload still gets one worker."""
        assert resolve_workers(4, workload=0) == 1
