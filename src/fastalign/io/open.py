"""
Physical layer for sequence files: compression sniffing and standard streams.
"""
from io import IOBase
from typing import Union, BinaryIO, Optional
from pathlib import Path
from sys import stdout, stdin
from importlib import import_module

from fastalign.utils import is_stream_path


# Classes --------------------------------------------------------------------------------------------------------------
class PeekableHandle:
    """
    A wrapper around a non-seekable binary stream (stdin, pipes) that allows peeking at the first bytes without
    consuming them. Used by ``Xopen`` to sniff compression.
    """
    __slots__ = ('_stream', '_buffer')

    def __init__(self, stream: BinaryIO, max_peek: int = 4096):
        self._stream = stream
        self._buffer = stream.read(max_peek)

    def peek(self, size: int = -1) -> bytes:
        return self._buffer if size < 0 else self._buffer[:size]

    def read(self, size: int = -1) -> bytes:
        if not self._buffer: return self._stream.read(size)
        if size < 0:
            chunk, self._buffer = self._buffer, b''
            return chunk + self._stream.read()
        chunk, self._buffer = self._buffer[:size], self._buffer[size:]
        if len(chunk) < size: chunk += self._stream.read(size - len(chunk))
        return chunk

    def readline(self) -> bytes:
        if not self._buffer: return self._stream.readline()
        if (nl := self._buffer.find(b'\n')) != -1:
            line, self._buffer = self._buffer[:nl + 1], self._buffer[nl + 1:]
            return line
        line, self._buffer = self._buffer, b''
        return line + self._stream.readline()

    def __iter__(self):
        while line := self.readline(): yield line

    def close(self):
        if hasattr(self._stream, 'close'): self._stream.close()


class Xopen:
    """
    Opens files, standard streams and compressed files behind one context manager.

    Reading sniffs compression from the magic bytes; writing infers it from the extension. ``-`` means stdin when
    reading and stdout when writing; standard streams are never closed on exit.

    Examples:
        >>> with Xopen("file.fasta.gz", "rb") as f:
        ...     content = f.read()
    """
    _MAGIC = {
        b'\x1f\x8b': 'gzip',
        b'\x42\x5a\x68': 'bz2',
        b'\xfd7zXZ\x00': 'lzma',
    }
    _EXT_TO_PKG = {'gz': 'gzip', 'bz2': 'bz2', 'xz': 'lzma'}
    _MIN_N_BYTES = max(len(i) for i in _MAGIC.keys())

    def __init__(self, file: Union[str, Path, BinaryIO], mode: str = 'rb'):
        self.file = file
        self.mode = mode
        self._handle: Optional[BinaryIO] = None
        self._raw: Optional[BinaryIO] = None
        self._close_on_exit = False

    @property
    def name(self) -> str:
        return getattr(self.file, 'name', str(self.file))

    @property
    def writing(self) -> bool: return 'w' in self.mode or 'a' in self.mode or 'x' in self.mode

    def __enter__(self) -> BinaryIO:
        self._handle = self._open()
        return self._handle

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._handle is None: return
        if self._close_on_exit: self._handle.close()
        elif self.writing: self._handle.flush()
        # Decompressors do not close a file object they were handed
        if self._raw is not None and self._raw is not self._handle: self._raw.close()
        self._handle = self._raw = None

    @staticmethod
    def _opener(pkg_name: str):
        return import_module(pkg_name).open

    def _open(self) -> BinaryIO:
        if isinstance(self.file, IOBase) or hasattr(self.file, 'read') or hasattr(self.file, 'write'):
            if self.writing: return self.file
            return self._sniff(self.file)
        if is_stream_path(self.file):
            return stdout.buffer if self.writing else self._sniff(stdin.buffer)

        path = Path(self.file).expanduser()
        self._close_on_exit = True
        if self.writing:
            if pkg := self._EXT_TO_PKG.get(path.suffix.lower().lstrip('.')): return self._opener(pkg)(path, self.mode)
            return open(path, self.mode)
        self._raw = open(path, 'rb')
        return self._sniff(self._raw)

    def _sniff(self, raw: BinaryIO) -> Union[BinaryIO, PeekableHandle]:
        """Wraps ``raw`` in a decompressor if its first bytes carry a known magic number."""
        try:
            seekable = raw.seekable()
        except (AttributeError, ValueError, OSError):
            seekable = False
        if seekable:
            start = raw.read(self._MIN_N_BYTES)
            raw.seek(0)
        else:
            raw = PeekableHandle(raw)
            start = raw.peek(self._MIN_N_BYTES)
        for magic, pkg in self._MAGIC.items():
            if start.startswith(magic):
                self._close_on_exit = True
                return self._opener(pkg)(raw, mode='rb')
        return raw
