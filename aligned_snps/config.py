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


Run configuration for the parallel workloads.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class RunOptions:
    """
    Options controlling how a workload is spread over worker processes.

    Attributes:
        workers: Number of worker processes. 0 uses every available CPU.
                 The batch runner never starts more workers than it has queries.
        chunksize: Number of records handed to a streaming worker at a time.
        progress: Show a tqdm progress bar on stderr.
    """
    workers: int = 0           # 0 = os.cpu_count()
    chunksize: int = 16        # Records per task sent to the streaming pool
    progress: bool = False     # Progress bar (stderr)

    def __post_init__(self):
        """Validate option values."""
        if self.workers < 0:
            raise ValueError(f"workers must be >= 0, got: {self.workers}")
        if self.chunksize < 1:
            raise ValueError(f"chunksize must be >= 1, got: {self.chunksize}")


DEFAULT_RUN_OPTIONS = RunOptions()


def resolve_workers(requested, workload=None):
    """
    Turn a requested worker count into the number of workers to start.

    Args:
        requested (int): Requested count, 0 meaning all available CPUs
        workload (int, optional): Number of independent work items, if known

    Returns:
        int: Worker count, at least 1 and never more than workload
    """
    workers = requested if requested > 0 else (os.cpu_count() or 1)
    if workload is not None:
        workers = min(workers, workload)
    return max(1, workers)
