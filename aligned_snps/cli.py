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


Command-line entry points for the snps and closest workloads.

Example usage:
    aligned-snps snps -r reference.fasta -q alignment.fasta -o snps.csv
    cat alignment.fasta | aligned-snps snps -r reference.fasta > snps.csv
    aligned-snps closest --query queries.fasta --target targets.fasta -o closest.csv
"""

import argparse
import logging
import os
import shutil
import sys
import tempfile
from contextlib import contextmanager

from .closest import find_closest
from .config import RunOptions
from .errors import AlignedSnpsError
from .snps import find_snps

STD_STREAM_NAMES = {'-', 'stdin', 'stdout'}
STDOUT_SPOOL_BYTES = 16 * 1024 * 1024


@contextmanager
def open_input(name):
    """Open a named file for reading, or use stdin for 'stdin' / '-'."""
    if name in STD_STREAM_NAMES:
        yield sys.stdin
        return
    with open(name, encoding="utf-8") as handle:
        yield handle


@contextmanager
def open_output(name):
    """
    Open an output destination, or use stdout for 'stdout' / '-'.

    Files are written to a temporary file next to the destination and moved
    into place only if the block completes, so a failed run never leaves a
    partial output file behind. Output for stdout is spooled and copied out
    only on success, so a failed run writes nothing there either.
    """
    if name in STD_STREAM_NAMES:
        with tempfile.SpooledTemporaryFile(max_size=STDOUT_SPOOL_BYTES, mode="w+",
                                           encoding="utf-8") as spool:
            yield spool
            spool.seek(0)
            shutil.copyfileobj(spool, sys.stdout)
        sys.stdout.flush()
        return

    directory = os.path.dirname(os.path.abspath(name))
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".aligned-snps-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yield handle
        os.replace(tmp_path, name)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def _add_run_arguments(parser):
    parser.add_argument("-o", "--outfile", default="stdout",
                        help="Output to write (default: stdout)")
    parser.add_argument("-t", "--threads", type=int, default=0,
                        help="Number of worker processes (default: all CPUs)")
    parser.add_argument("--progress", action="store_true",
                        help="Show a progress bar on stderr")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="aligned-snps",
        description="Compare aligned nucleotide sequences: SNPs against a reference, "
                    "or the closest sequence in a target alignment.")
    subparsers = parser.add_subparsers(dest="command")

    snps_parser = subparsers.add_parser(
        "snps", help="Find SNPs relative to a reference",
        description="Write one CSV row per query sequence with its '|'-delimited SNPs "
                    "relative to the reference. Reference and alignment must be the same width.")
    snps_parser.add_argument("-r", "--reference", required=True,
                             help="Reference sequence, in FASTA format")
    snps_parser.add_argument("-q", "--query", default="stdin",
                             help="Alignment of sequences to find SNPs in, in FASTA format (default: stdin)")
    _add_run_arguments(snps_parser)

    closest_parser = subparsers.add_parser(
        "closest", help="Find the closest target sequence to each query",
        description="Find the closest sequence in the target alignment to each query. "
                    "Ties on distance are broken by genome completeness.")
    closest_parser.add_argument("--query", required=True,
                                help="Alignment of query sequences, in FASTA format")
    closest_parser.add_argument("--target", required=True,
                                help="Alignment of target sequences, in FASTA format")
    _add_run_arguments(closest_parser)

    return parser


def _run(args):
    options = RunOptions(workers=args.threads, progress=args.progress)

    if args.command == "snps":
        with open_input(args.reference) as reference, open_input(args.query) as query, \
                open_output(args.outfile) as out:
            find_snps(reference, query, out, options)
    else:
        with open_input(args.query) as query, open_input(args.target) as target, \
                open_output(args.outfile) as out:
            find_closest(query, target, out, options)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.threads < 0:
        parser.error(f"--threads must be >= 0, got: {args.threads}")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        _run(args)
    except (AlignedSnpsError, OSError) as e:
        logging.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
