"""
Module for parsing CIGAR strings.

A CIGAR is held in a Structure-of-Arrays layout (one array of op codes, one of counts) so the materialization kernel
can walk it without touching Python objects.
"""
from enum import IntEnum
from re import compile as regex
from typing import Iterator, NamedTuple, Union

import numpy as np

from fastalign import FastalignError


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class CigarError(FastalignError): pass
class CigarParseError(CigarError): pass
class CigarBoundsError(CigarError): pass


# Classes --------------------------------------------------------------------------------------------------------------
class CigarOp(IntEnum):
    """The nine SAM CIGAR operations, coded in SAM order (``MIDNSHP=X``)."""
    MATCH = 0
    INSERTION = 1
    DELETION = 2
    SKIP = 3
    SOFT_CLIP = 4
    HARD_CLIP = 5
    PAD = 6
    EQUAL = 7
    DIFF = 8

    @property
    def symbol(self) -> str: return _OP_SYMBOLS[self]
    @property
    def consumes_query(self) -> bool: return bool(Cigar.QUERY_CONSUMERS[self])
    @property
    def consumes_target(self) -> bool: return bool(Cigar.TARGET_CONSUMERS[self])

    @classmethod
    def from_symbol(cls, symbol: str) -> 'CigarOp':
        if (code := _SYMBOL_TO_OP.get(symbol)) is None: raise CigarParseError(f'Unknown CIGAR operation: {symbol}')
        return cls(code)


class CigarOperation(NamedTuple):
    op: CigarOp
    length: int

    def __str__(self): return f'{self.length}{self.op.symbol}'


class Cigar:
    """
    A parsed CIGAR string.

    Args:
        ops: Array of op codes (``CigarOp`` values).
        counts: Array of operation lengths, same length as ``ops``.

    Examples:
        >>> cigar = Cigar.parse('3M1D2M')
        >>> len(cigar)
        3
        >>> cigar.query_length, cigar.target_length
        (5, 6)
        >>> str(cigar)
        '3M1D2M'
    """
    # Consumption logic, indexed by op code
    QUERY_CONSUMERS = np.array([True, True, False, False, True, True, False, True, True], dtype=bool)
    TARGET_CONSUMERS = np.array([True, False, True, True, False, False, False, True, True], dtype=bool)
    # Tokens are (count, op character); whatever is left after the last token is a dangling trailer
    _TOKEN_REGEX = regex(r'(?P<n>[^A-Za-z=]*)(?P<op>[A-Za-z=])')
    __slots__ = ('ops', 'counts')

    def __init__(self, ops: np.ndarray, counts: np.ndarray):
        if len(ops) != len(counts): raise CigarError('CIGAR ops and counts must have the same length')
        self.ops = ops
        self.counts = counts

    def __len__(self) -> int: return len(self.ops)
    def __iter__(self) -> Iterator[CigarOperation]:
        for op, n in zip(self.ops, self.counts): yield CigarOperation(CigarOp(int(op)), int(n))
    def __getitem__(self, item: int) -> CigarOperation: return CigarOperation(CigarOp(int(self.ops[item])), int(self.counts[item]))
    def __str__(self): return ''.join(map(str, self))
    def __repr__(self): return f'Cigar({str(self)!r})'
    def __eq__(self, other):
        if isinstance(other, Cigar):
            return np.array_equal(self.ops, other.ops) and np.array_equal(self.counts, other.counts)
        return False

    @property
    def query_length(self) -> int:
        """Number of query bases consumed (M, I, S, H, =, X)."""
        return int(self.counts[self.QUERY_CONSUMERS[self.ops]].sum())

    @property
    def target_length(self) -> int:
        """Number of reference bases consumed (M, D, N, =, X)."""
        return int(self.counts[self.TARGET_CONSUMERS[self.ops]].sum())

    @classmethod
    def parse(cls, cigar: Union[str, bytes, 'Cigar']) -> 'Cigar':
        """
        Parses a CIGAR string into operations.

        Args:
            cigar: The CIGAR string (e.g., "10M2D5M"), as str or bytes. A ``Cigar`` is returned unchanged.

        Returns:
            The parsed ``Cigar``.

        Raises:
            CigarParseError: If a count is missing or not a number, an operation character is unknown, or the string
                ends with a count that has no operation.
        """
        if isinstance(cigar, Cigar): return cigar
        if isinstance(cigar, bytes): cigar = cigar.decode('ascii', errors='replace')
        ops, counts, end = [], [], 0
        for match in cls._TOKEN_REGEX.finditer(cigar):
            token, n, symbol = match.group(0), match['n'], match['op']
            if not (n.isascii() and n.isdigit()): raise CigarParseError(f'Failed to parse CIGAR operation count: {token} in CIGAR string {cigar}')
            if (code := _SYMBOL_TO_OP.get(symbol)) is None:
                raise CigarParseError(f'Unknown CIGAR operation: {token} in CIGAR string {cigar}')
            ops.append(code)
            counts.append(int(n))
            end = match.end()
        if end != len(cigar):
            raise CigarParseError(f'Invalid trailing CIGAR token: {cigar[end:]} in CIGAR string {cigar}')
        return cls(np.array(ops, dtype=np.uint8), np.array(counts, dtype=np.int64))

    @classmethod
    def from_operations(cls, *operations: CigarOperation) -> 'Cigar':
        return cls(np.array([int(o.op) for o in operations], dtype=np.uint8),
                   np.array([o.length for o in operations], dtype=np.int64))


# Constants ------------------------------------------------------------------------------------------------------------
_OP_SYMBOLS = 'MIDNSHP=X'
_SYMBOL_TO_OP = {s: i for i, s in enumerate(_OP_SYMBOLS)}
