"""
Module for the threaded alignment pipeline.

One reader thread streams query records onto the ``to_align`` channel, ``threads`` worker threads align and gap them
and push the results onto the ``to_write`` channel, and one writer thread serializes them. A stage that fails stops
its own loop; the other stages carry on until their input runs dry (unless ``fail_fast`` is set), and once every thread
has been joined the first failure is raised.
"""
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from queue import SimpleQueue
from threading import Event, Lock, Thread
from typing import BinaryIO, Iterable, Union
from warnings import warn

from fastalign import FastalignError, FastalignWarning
from fastalign.containers.record import Record, GappedRecord, Reference, UnknownContigError
from fastalign.core.cigar import CigarError
from fastalign.external import Minimap2
from fastalign.io import BaseWriter
from fastalign.io.fasta import FastaReader, FastaWriter
from fastalign.utils import Config


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlignmentError(FastalignError): pass
class PipelineError(FastalignError): pass
class NonPrimaryAlignmentWarning(FastalignWarning): pass


# Classes --------------------------------------------------------------------------------------------------------------
class _Skipped:
    """Stands in on the write channel for a record that failed, so ordered output can move past it."""
    __slots__ = ('index',)
    def __init__(self, index: int): self.index = index


@dataclass
class PipelineConfig(Config):
    """
    Pipeline options.

    Attributes:
        threads: Number of worker threads (at least 1).
        ordered: Write records in input order instead of arrival order.
        fail_fast: Stop every stage as soon as one of them fails.
        width: FASTA line width of the output (0 for no wrapping).
    """
    threads: int = 1
    ordered: bool = False
    fail_fast: bool = False
    width: int = 0


class Channel:
    """
    Unbounded FIFO between pipeline stages.

    The channel is closed once each of its ``producers`` has called ``close``; every one of its ``consumers`` then
    stops iterating after draining what was sent before.
    """
    _CLOSED = object()
    __slots__ = ('_queue', '_producers', '_consumers', '_lock')

    def __init__(self, producers: int = 1, consumers: int = 1):
        self._queue = SimpleQueue()
        self._producers = producers
        self._consumers = consumers
        self._lock = Lock()

    @property
    def closed(self) -> bool: return self._producers == 0

    def send(self, item):
        if self.closed: raise PipelineError('Cannot send on a closed channel')
        self._queue.put(item)

    def close(self):
        with self._lock:
            if self._producers == 0: return
            self._producers -= 1
            if self._producers: return
        for _ in range(self._consumers): self._queue.put(self._CLOSED)

    def __iter__(self):
        while (item := self._queue.get()) is not self._CLOSED: yield item


class Pipeline:
    """
    Aligns query records to a reference and writes them out as reference-length gapped records.

    Args:
        aligner: Aligner handle; each worker maps with its own clone.
        reference: The flattened reference the hits are gapped against.
        config: Pipeline options.

    Examples:
        >>> reference = Reference.from_file('reference.fasta')
        >>> with Minimap2('reference.fasta') as aligner:
        ...     n = Pipeline(aligner, reference, PipelineConfig(threads=4)).run('queries.fasta', 'msa.fasta')
    """
    def __init__(self, aligner: Minimap2, reference: Reference, config: PipelineConfig = None):
        self.aligner = aligner
        self.reference = reference
        self.config = config or PipelineConfig()
        if self.config.threads < 1: raise PipelineError(f'At least one worker thread is needed, got {self.config.threads}')
        self._errors: list[Exception] = []
        self._cancel = Event()
        self._written = 0

    def __repr__(self): return f'Pipeline({self.reference!r}, threads={self.config.threads})'

    @property
    def errors(self) -> list[Exception]:
        """Every failure captured by the last run, in the order they were observed."""
        return list(self._errors)

    def align_record(self, record: Record, aligner: Minimap2) -> GappedRecord:
        """
        Aligns one record and gaps it against the reference.

        Raises:
            AlignmentError: If the record does not map, its hit has no CIGAR, lies on an unknown contig, or its CIGAR
                does not fit the record or the reference.
        """
        if not (hits := aligner.map(record.seq)): raise AlignmentError(f'No alignment found for sequence {record.name}')
        hit = hits[0]
        if not hit.is_primary: warn(f'Not a primary alignment: {record.name}', NonPrimaryAlignmentWarning)
        if hit.cigar is None: raise AlignmentError(f'No CIGAR string found for alignment {record.name}')
        query = record.reverse_complement() if hit.strand < 0 else record
        try:
            start = self.reference.to_global(hit.target_name, hit.target_start)
            return GappedRecord.from_alignment(query, len(self.reference), hit.cigar, start)
        except (CigarError, UnknownContigError) as e:
            raise AlignmentError(f'Failed to align sequence {record.name}: {e}') from e

    def run(self, source: Union[str, Path, BinaryIO, Iterable[Record]],
            sink: Union[str, Path, BinaryIO, BaseWriter]) -> int:
        """
        Runs the pipeline to completion.

        Args:
            source: Query FASTA (path, ``-`` for stdin, binary handle) or an iterable of records.
            sink: Output FASTA (path, ``-`` for stdout, binary handle) or an already opened writer.

        Returns:
            The number of records written.

        Raises:
            The first failure of any stage, after every thread has finished. Records written before the failure are
            kept in the output.
        """
        self._errors, self._written = [], 0
        self._cancel.clear()
        threads = self.config.threads
        reader = FastaReader.open(source) if isinstance(source, (str, Path)) or hasattr(source, 'read') else None
        writer = sink if isinstance(sink, BaseWriter) else FastaWriter(sink, width=self.config.width)
        with reader or nullcontext(), nullcontext(writer) if writer is sink else writer:
            aligners = self._clone_aligners(threads)
            to_align, to_write = Channel(1, threads), Channel(threads, 1)
            stages = [Thread(target=self._read, args=(reader or source, to_align), name='fastalign-reader')]
            stages += [Thread(target=self._work, args=(aligner, to_align, to_write), name=f'fastalign-worker-{i}')
                       for i, aligner in enumerate(aligners)]
            stages.append(Thread(target=self._write, args=(writer, to_write), name='fastalign-writer'))
            for stage in stages: stage.start()
            for stage in stages: stage.join()
        if self._errors: raise self._errors[0]
        return self._written

    def _clone_aligners(self, n: int) -> list[Minimap2]:
        aligners = []
        try:
            for _ in range(n): aligners.append(self.aligner.clone())
        except Exception:
            for aligner in aligners: aligner.release()
            raise
        return aligners

    def _fail(self, error: Exception):
        self._errors.append(error)
        if self.config.fail_fast: self._cancel.set()

    def _read(self, records: Iterable[Record], to_align: Channel):
        try:
            for index, record in enumerate(records):
                if self._cancel.is_set(): break
                record.index = index
                to_align.send(record)
        except Exception as e:
            self._fail(e)
        finally:
            to_align.close()

    def _work(self, aligner: Minimap2, to_align: Channel, to_write: Channel):
        try:
            for record in to_align:
                # Once cancelled, drain the channel without aligning
                if self._cancel.is_set(): continue
                try:
                    gapped = self.align_record(record, aligner)
                except Exception:
                    to_write.send(_Skipped(record.index))
                    raise
                to_write.send(gapped)
        except Exception as e:
            self._fail(e)
        finally:
            aligner.release()
            to_write.close()

    def _write(self, writer: BaseWriter, to_write: Channel):
        pending: dict[int, Union[GappedRecord, _Skipped]] = {}
        next_index = 0
        try:
            for record in to_write:
                if self._cancel.is_set(): continue
                if not self.config.ordered:
                    if not isinstance(record, _Skipped): self._write_one(writer, record)
                    continue
                pending[record.index] = record
                while next_index in pending:
                    if not isinstance(record := pending.pop(next_index), _Skipped): self._write_one(writer, record)
                    next_index += 1
        except Exception as e:
            self._fail(e)

    def _write_one(self, writer: BaseWriter, record: GappedRecord):
        writer.write_one(record)
        self._written += 1

