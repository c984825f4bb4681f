"""
Command-line entry point.
"""
import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from fastalign import __version__
from fastalign.containers.record import Reference
from fastalign.external import Minimap2, AlignerConfig
from fastalign.pipeline import Pipeline, PipelineConfig
from fastalign.utils import is_stream_path


# Functions ------------------------------------------------------------------------------------------------------------
def existing_input(path: str) -> str:
    """argparse type for input files: ``-`` passes through, anything else must exist."""
    if path == '-' or Path(path).exists(): return path
    raise argparse.ArgumentTypeError(f'File does not exist: {path}')


def existing_reference(path: str) -> str:
    """argparse type for the reference, which minimap2 has to index from disk."""
    if is_stream_path(path): raise argparse.ArgumentTypeError('The reference must be a file, not a stream')
    return existing_input(path)


def positive_int(value: str) -> int:
    if (n := int(value)) < 1: raise argparse.ArgumentTypeError(f'Expected a positive integer, got {value}')
    return n


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog='fastalign', description='Quick multiple sequence alignment using minimap2.'
    )
    p.add_argument('-i', '--input', required=True, type=existing_input, metavar='FASTA',
                   help="Input (unaligned) FASTA file, or '-' for stdin.")
    p.add_argument('-r', '--reference', required=True, type=existing_reference, metavar='FASTA',
                   help='Input reference FASTA file.')
    p.add_argument('-o', '--output', required=True, metavar='FASTA',
                   help="Output alignment file, or '-' for stdout.")
    p.add_argument('-t', '--threads', type=positive_int, default=1, metavar='N',
                   help='Number of alignment threads (default: %(default)s).')
    p.add_argument('--ordered', action='store_true',
                   help='Write records in input order instead of the order they finish aligning.')
    p.add_argument('--fail-fast', action='store_true',
                   help='Stop all threads as soon as one record fails, instead of aligning the rest.')
    p.add_argument('--width', type=int, default=0, metavar='N',
                   help='Wrap output sequences at N characters (default: no wrapping).')
    p.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    return p.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    """Builds the index and the flattened reference, then runs the pipeline. Returns the number of records written."""
    with Minimap2(args.reference, AlignerConfig()) as aligner:
        reference = Reference.from_file(args.reference)
        return Pipeline(aligner, reference, PipelineConfig.from_obj(args)).run(args.input, args.output)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        run(args)
    except Exception as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
