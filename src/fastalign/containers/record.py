"""Containers for sequence records, gapped records and the flattened reference."""
from typing import Iterable, Iterator, Union

from fastalign import FastalignError
from fastalign.core.gapped import materialize
from fastalign.core.cigar import Cigar


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class UnknownContigError(FastalignError): pass


# Classes --------------------------------------------------------------------------------------------------------------
class Record:
    """
    A named biological sequence.

    Args:
        seq: The sequence bytes.
        id_: Record identifier (the first word of the FASTA header).
        desc: Optional description (the rest of the FASTA header).
        index: Position of the record in its input stream, if known.

    Examples:
        >>> rec = Record(b'ATGCGA', b'seq_1')
        >>> len(rec)
        6
        >>> rec.id
        b'seq_1'
    """
    __slots__ = ('seq', 'id', 'description', 'index')
    def __init__(self, seq: bytes, id_: bytes, desc: bytes = None, index: int = None):
        self.seq: bytes = seq
        self.id: bytes = id_
        self.description: bytes = desc or b''
        self.index = index
    def __str__(self): return self.id.decode(errors='ignore')
    def __repr__(self) -> str: return f'{self.__class__.__name__}({self.id!r}, length={len(self.seq)})'
    def __len__(self) -> int: return len(self.seq)
    def __hash__(self) -> int: return hash(self.id)
    def __eq__(self, other) -> bool:
        if isinstance(other, Record): return self.id == other.id and self.seq == other.seq
        return False

    @property
    def name(self) -> str:
        """The record identifier as text, for messages."""
        return str(self)

    def reverse_complement(self) -> 'Record':
        """Returns a record with the same identifiers and the reverse complement of the sequence."""
        return self.__class__(self.seq.translate(_COMPLEMENT)[::-1], self.id, self.description, self.index)


class GappedRecord(Record):
    """
    A record whose sequence has been gapped to span a whole reference.
    Only built through ``GappedRecord.from_alignment``.
    """
    __slots__ = ()

    @classmethod
    def from_alignment(cls, record: Record, reference_length: int, cigar: Union[str, Cigar],
                       target_start: int) -> 'GappedRecord':
        return cls(materialize(record.seq, reference_length, cigar, target_start), record.id, record.description,
                   record.index)


class Reference:
    """
    All records of a reference file concatenated, in file order, into one coordinate space.

    Args:
        records: Reference records.

    Examples:
        >>> ref = Reference([Record(b'AAAA', b'chr1'), Record(b'CC', b'chr2')])
        >>> len(ref), ref.offsets[b'chr2']
        (6, 4)
        >>> ref.to_global(b'chr2', 1)
        5
    """
    __slots__ = ('seq', 'offsets', 'names')
    def __init__(self, records: Iterable[Record]):
        parts, self.offsets, self.names, offset = [], {}, [], 0
        for record in records:
            self.offsets.setdefault(record.id, offset)
            self.names.append(record.id)
            parts.append(record.seq)
            offset += len(record.seq)
        self.seq: bytes = b''.join(parts)

    def __len__(self) -> int: return len(self.seq)
    def __iter__(self) -> Iterator[bytes]: return iter(self.names)
    def __repr__(self) -> str: return f'Reference({len(self.names)} records, length={len(self)})'

    def to_global(self, name: bytes, start: int) -> int:
        """
        Translates a contig-relative start into the flattened coordinate space.
        A missing contig name means the start is already relative to the flattened sequence.

        Raises:
            UnknownContigError: If the reference has no contig of that name.
        """
        if not name: return start
        if (offset := self.offsets.get(name)) is None:
            raise UnknownContigError(f'Unknown reference contig: {name.decode(errors="replace")}')
        return offset + start

    @classmethod
    def from_file(cls, file, **kwargs) -> 'Reference':
        """Reads every record of a FASTA file into a ``Reference``."""
        from fastalign.io.fasta import FastaReader
        with FastaReader.open(file, **kwargs) as reader:
            return cls(reader)


# Constants ------------------------------------------------------------------------------------------------------------
_COMPLEMENT = bytes.maketrans(b'ACGTUNRYKMBVDHSWacgtunrykmbvdhsw', b'TGCAANYRMKVBHDSWtgcaanyrmkvbhdsw')
