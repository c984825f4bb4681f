"""
FASTA reading and writing.
"""
from pathlib import Path
from typing import Union, Generator, BinaryIO

from fastalign.containers.record import Record
from fastalign.io import BaseReader, BaseWriter, ParserError


# Classes --------------------------------------------------------------------------------------------------------------
class FastaReader(BaseReader):
    """
    Reader for FASTA format files.

    Records are numbered in file order (``Record.index``); sequence lines are joined with all whitespace removed.

    Examples:
        >>> with open("genome.fasta", "rb") as f:
        ...     for record in FastaReader(f):
        ...         print(record.id)
    """
    __slots__ = ('_min_seq_length',)
    def __init__(self, handle: BinaryIO, min_seq_length: int = 0, **kwargs):
        super().__init__(handle, **kwargs)
        self._min_seq_length = min_seq_length

    def __iter__(self) -> Generator[Record, None, None]:
        """
        Iterates over FASTA records.

        Yields:
            Record objects.

        Raises:
            ParserError: If sequence data appears before the first header, or a header has no name.
        """
        index = 0
        for header, seq_parts in self._read_entries():
            seq = b''.join(seq_parts).translate(None, _WHITESPACE)
            if len(seq) < self._min_seq_length: continue
            if not (parts := header.split(None, 1)): raise ParserError(f'FASTA record {index + 1} has an empty header')
            yield Record(seq, parts[0], parts[1] if len(parts) > 1 else b'', index)
            index += 1

    def _read_entries(self) -> Generator[tuple[bytes, list[bytes]], None, None]:
        """Internal generator that yields (header, seq_parts_list)."""
        header, seq_parts = None, []
        for n, line in enumerate(self._handle, 1):
            if line.startswith(b'>'):
                if header is not None: yield header, seq_parts
                header, seq_parts = line[1:].strip(), []
            elif header is not None:
                seq_parts.append(line)
            elif line.strip():
                raise ParserError(f"Invalid FASTA at line {n}: expected '>'")
        if header is not None: yield header, seq_parts


class FastaWriter(BaseWriter):
    """
    Writer for FASTA format files.

    Examples:
        >>> with FastaWriter("output.fasta") as w:
        ...     w.write_one(record)
    """
    __slots__ = ('width',)
    def __init__(self, file: Union[str, Path, BinaryIO], width: int = 0, **kwargs):
        """
        Initializes the FastaWriter.

        Args:
            file: File path, ``-`` (stdout) or binary handle.
            width: Line width for sequence wrapping (0 for no wrapping).
            **kwargs: Additional arguments.
        """
        super().__init__(file, **kwargs)
        self.width = width

    def write_one(self, record: Record):
        """
        Writes a single FASTA record.

        Args:
            record: The Record object to write.
        """
        if not isinstance(record, Record): raise TypeError("FastaWriter expects Record objects")

        header = b">" + record.id
        if record.description: header += b" " + record.description
        self._handle.write(header + b"\n")

        seq, width = record.seq, self.width
        if width > 0:
            for i in range(0, len(seq), width):
                self._handle.write(seq[i:i + width] + b"\n")
        else:
            self._handle.write(seq + b"\n")


# Constants ------------------------------------------------------------------------------------------------------------
_WHITESPACE = b' \t\r\n\v\f'
