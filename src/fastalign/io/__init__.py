"""
Module for reading and writing sequence files.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union, Generator, BinaryIO

from fastalign import FastalignError
from fastalign.containers.record import Record
from fastalign.io.open import Xopen


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class SeqIOError(FastalignError, IOError):
    """Base class for sequence I/O errors."""

class ParserError(SeqIOError):
    """Raised when a sequence file is malformed."""


# Classes --------------------------------------------------------------------------------------------------------------
class BaseReader(ABC):
    """Abstract base class for sequence file readers."""
    __slots__ = ('_handle', '_iterator', '_opener')
    def __init__(self, handle: BinaryIO, **kwargs):
        """
        Initializes the reader.

        Args:
            handle: The open binary handle to read from.
            **kwargs: Additional arguments.
        """
        self._handle = handle
        self._iterator = None
        self._opener = None

    @classmethod
    def open(cls, file: Union[str, Path, BinaryIO], **kwargs) -> 'BaseReader':
        """
        Opens a path, ``-`` (stdin) or handle for reading, decompressing transparently.

        Examples:
            >>> with FastaReader.open("reference.fasta.gz") as reader:
            ...     records = list(reader)
        """
        opener = Xopen(file, mode='rb')
        reader = cls(opener.__enter__(), **kwargs)
        reader._opener = opener
        return reader

    @abstractmethod
    def __iter__(self) -> Generator[Record, None, None]: ...
    def __enter__(self): return self
    def __exit__(self, exc_type, exc_val, exc_tb): self.close()
    def __next__(self):
        if self._iterator is None:
            self._iterator = self.__iter__()
        return next(self._iterator)

    def close(self):
        """Closes the underlying file if this reader opened it."""
        if self._opener is not None:
            self._opener.__exit__(None, None, None)
            self._opener = None


class BaseWriter(ABC):
    """
    Abstract base class for sequence file writers.

    Examples:
        >>> with FastaWriter("output.fasta") as w:
        ...     w.write(record1, record2)
    """
    __slots__ = ('_opener', '_handle')
    def __init__(self, file: Union[str, Path, BinaryIO], mode: str = 'wb', **kwargs):
        self._opener = Xopen(file, mode=mode)
        self._handle = None

    def __enter__(self):
        """Opens the file and writes the header."""
        self._handle = self._opener.__enter__()
        self.write_header()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Closes the file."""
        self._opener.__exit__(exc_type, exc_val, exc_tb)
        self._handle = None

    def write(self, *items: Record):
        """Writes multiple records, unpacking lists and tuples."""
        for item in items:
            if isinstance(item, (list, tuple)):
                for sub_item in item: self.write_one(sub_item)
            else:
                self.write_one(item)

    @abstractmethod
    def write_one(self, item: Record):
        """
        Writes a single item.

        Args:
            item: Record to write.
        """
        pass

    def write_header(self):
        """Writes the file header if applicable."""
        pass
