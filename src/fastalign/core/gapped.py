"""
Module for materializing gapped sequences from alignments.

A gapped sequence spans the whole reference: reference bases not covered by the query are gaps, query bases absent from
the reference (insertions, clips) are dropped. Stacking the gapped sequences of many queries against the same
reference gives a multiple sequence alignment.
"""
from typing import Union

import numpy as np

from fastalign.core.cigar import Cigar, CigarOp, CigarBoundsError
from fastalign.utils.resources import jit


# Functions ------------------------------------------------------------------------------------------------------------
def materialize(sequence: bytes, reference_length: int, cigar: Union[str, bytes, Cigar], target_start: int) -> bytes:
    """
    Builds a gapped sequence of exactly ``reference_length`` from a query and its CIGAR.

    Args:
        sequence: The query sequence.
        reference_length: Length of the reference coordinate frame.
        cigar: The alignment CIGAR (string or parsed ``Cigar``).
        target_start: 0-based offset into the reference where the alignment starts.

    Returns:
        The gapped sequence; ``len(result) == reference_length``.

    Raises:
        CigarParseError: If the CIGAR string is malformed.
        CigarBoundsError: If the CIGAR consumes more query bases than ``sequence`` has, or more reference bases
            than fit between ``target_start`` and ``reference_length``.

    Examples:
        >>> materialize(b'ACG', 10, '3M', 2)
        b'--ACG-----'
        >>> materialize(b'AAAA', 5, '2M1D2M', 0)
        b'AA-AA'
    """
    cigar = Cigar.parse(cigar)
    if reference_length < 0: raise CigarBoundsError(f'Invalid reference length: {reference_length}')
    if not 0 <= target_start <= reference_length:
        raise CigarBoundsError(f'Alignment start {target_start} outside reference of length {reference_length}')

    seq = np.frombuffer(sequence, dtype=np.uint8)
    out = np.full(reference_length, GAP_CODE, dtype=np.uint8)
    status, i, seq_pos, ref_pos = _materialize_kernel(seq, cigar.ops, cigar.counts, target_start, out)
    if status == _QUERY_OVERFLOW:
        raise CigarBoundsError(
            f'CIGAR operation out-of-bounds sequence: op={cigar[i]}, seq_pos={seq_pos}, count={cigar.counts[i]}, '
            f'sequence length={len(sequence)}'
        )
    if status == _TARGET_OVERFLOW:
        raise CigarBoundsError(
            f'CIGAR operation out-of-bounds reference: op={cigar[i]}, ref_pos={ref_pos}, count={cigar.counts[i]}, '
            f'reference length={reference_length}'
        )
    return out.tobytes()


@jit(nopython=True, cache=True, nogil=True)
def _materialize_kernel(seq, ops, counts, target_start, out):
    """
    Walks the CIGAR, copying aligned query bases into the gap-filled ``out``.
    Returns (status, op index, seq_pos, ref_pos); on failure the index and positions are those of the failing op.
    """
    seq_len = len(seq)
    ref_len = len(out)
    seq_pos = 0
    ref_pos = target_start
    for i in range(len(ops)):
        op = ops[i]
        n = counts[i]
        if op == _MATCH or op == _EQUAL or op == _DIFF:
            if seq_pos + n > seq_len: return _QUERY_OVERFLOW, i, seq_pos, ref_pos
            if ref_pos + n > ref_len: return _TARGET_OVERFLOW, i, seq_pos, ref_pos
            out[ref_pos:ref_pos + n] = seq[seq_pos:seq_pos + n]
            seq_pos += n
            ref_pos += n
        elif op == _DELETION or op == _SKIP:
            # Already gaps
            if ref_pos + n > ref_len: return _TARGET_OVERFLOW, i, seq_pos, ref_pos
            ref_pos += n
        elif op == _INSERTION or op == _SOFT_CLIP or op == _HARD_CLIP:
            # Insertions are dropped so every gapped sequence keeps the reference length
            seq_pos += n
    return _OK, len(ops), seq_pos, ref_pos


# Constants ------------------------------------------------------------------------------------------------------------
GAP = b'-'
GAP_CODE = ord(GAP)
_OK, _QUERY_OVERFLOW, _TARGET_OVERFLOW = 0, 1, 2
_MATCH, _INSERTION, _DELETION, _SKIP = int(CigarOp.MATCH), int(CigarOp.INSERTION), int(CigarOp.DELETION), int(CigarOp.SKIP)
_SOFT_CLIP, _HARD_CLIP = int(CigarOp.SOFT_CLIP), int(CigarOp.HARD_CLIP)
_EQUAL, _DIFF = int(CigarOp.EQUAL), int(CigarOp.DIFF)
