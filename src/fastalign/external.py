"""
Module for managing the external aligner, minimap2, through its ``mappy`` binding.

The minimap2 index is built once and shared read-only; every clone of a ``Minimap2`` handle owns its own scratch
buffer, so clones can map concurrently from different threads and releasing one never affects the others.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import mappy

from fastalign import FastalignError
from fastalign.utils import Config, LiteralFile
from fastalign.utils.resources import RESOURCES


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlignerError(FastalignError): pass


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass
class AlignerConfig(Config):
    """
    Index and mapping options passed to minimap2.

    The default scoring is the ``asm20`` scoring (match 1, mismatch 4, gap open 6/26, gap extension 2/1) with the
    ambiguous base penalty set to 0, so ``N`` bases in either sequence cost nothing.
    """
    preset: str = 'asm20'
    scoring: tuple = (1, 4, 6, 2, 26, 1, 0)
    best_n: int = 5
    n_threads: int = RESOURCES.available_cpus
    k: int = None
    w: int = None


@dataclass(frozen=True)
class AlignmentHit:
    """
    One minimap2 hit, reduced to what is needed to gap the query.

    Attributes:
        target_name: Reference contig the hit lies on.
        target_start: 0-based start on that contig.
        cigar: CIGAR string, None if the aligner did not produce one.
        is_primary: Whether minimap2 marked the hit as primary.
        strand: 1 if the query maps forward, -1 if its reverse complement maps; the CIGAR then describes the
            reverse complement.
    """
    target_name: Optional[bytes]
    target_start: int
    cigar: Optional[str]
    is_primary: bool = True
    strand: int = 1

    @classmethod
    def from_mappy(cls, hit: 'mappy.Alignment', query_length: int) -> 'AlignmentHit':
        """
        Converts a mappy hit. mappy leaves the unaligned query ends out of its CIGAR, so they are added back as soft
        clips to give the SAM-style CIGAR of the whole (strand-oriented) query.
        """
        strand = -1 if hit.strand < 0 else 1
        cigar = hit.cigar_str or None
        if cigar is not None:
            lead, trail = (hit.q_st, query_length - hit.q_en) if strand > 0 else (query_length - hit.q_en, hit.q_st)
            cigar = (f'{lead}S' if lead else '') + cigar + (f'{trail}S' if trail else '')
        return cls(hit.ctg.encode() if hit.ctg else None, hit.r_st, cigar, bool(hit.is_primary), strand)


class Minimap2:
    """
    A handle on a minimap2 index.

    Requires the ``mappy`` package.

    Examples:
        >>> mm2 = Minimap2('reference.fasta')
        >>> worker_handle = mm2.clone()
        >>> hits = worker_handle.map(b'ACGT...')
        >>> worker_handle.release()
    """
    def __init__(self, reference: Union[str, Path, None] = None, config: AlignerConfig = None,
                 _aligner: 'mappy.Aligner' = None):
        self._config = config or AlignerConfig()
        if _aligner is None:
            if reference is None: raise AlignerError('A reference must be supplied to build a minimap2 index')
            _aligner = self._build(reference, self._config)
        self._aligner: Optional[mappy.Aligner] = _aligner
        self._buffer: Optional[mappy.ThreadBuffer] = mappy.ThreadBuffer()

    def __repr__(self): return f'Minimap2(preset={self._config.preset!r}, released={self.released})'
    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.release()
    def __call__(self, *args, **kwargs): return self.map(*args, **kwargs)

    @property
    def config(self) -> AlignerConfig: return self._config
    @property
    def released(self) -> bool: return self._aligner is None

    @staticmethod
    def _build(reference: Union[str, Path], config: AlignerConfig) -> 'mappy.Aligner':
        """Builds the index of a reference FASTA (or loads a prebuilt ``.mmi``)."""
        if not LiteralFile(reference): raise AlignerError(f'Reference {reference} does not exist or is empty')
        kwargs = {'preset': config.preset, 'scoring': list(config.scoring), 'best_n': config.best_n,
                  'n_threads': config.n_threads}
        if config.k: kwargs['k'] = config.k
        if config.w: kwargs['w'] = config.w
        aligner = mappy.Aligner(str(reference), **kwargs)
        if not aligner: raise AlignerError(f'Failed to build minimap2 index for {reference}')
        return aligner

    def clone(self) -> 'Minimap2':
        """
        Returns an independent handle on the same index, with its own scratch buffer.

        Raises:
            AlignerError: If this handle has been released.
        """
        if self.released: raise AlignerError('Cannot clone a released aligner')
        return self.__class__(config=self._config, _aligner=self._aligner)

    def map(self, sequence: Union[bytes, str]) -> list[AlignmentHit]:
        """
        Maps one query sequence.

        Args:
            sequence: The query sequence.

        Returns:
            The primary hits; empty if the query did not map. Secondary hits are dropped.
        """
        if self.released: raise AlignerError('Cannot map with a released aligner')
        if isinstance(sequence, bytes): sequence = sequence.decode('ascii', errors='replace')
        return [AlignmentHit.from_mappy(hit, len(sequence)) for hit in self._aligner.map(sequence, buf=self._buffer)
                if hit.is_primary]

    def release(self):
        """
        Drops this handle's scratch buffer and its reference to the index.
        The index itself is freed once the last handle referring to it is released.
        """
        self._buffer = None
        self._aligner = None
