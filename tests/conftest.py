import pytest

from fastalign.containers.record import Record, Reference
from fastalign.external import AlignmentHit


class FakeAligner:
    """
    Stands in for ``Minimap2``: hits are looked up by query sequence.
    Tracks clones and releases so tests can check every worker released its handle.
    """
    def __init__(self, hits: dict, delay=None, _root=None):
        self.hits = hits
        self.delay = delay
        self.root = _root or self
        self.released = False
        if _root is None:
            self.clones = []

    def clone(self):
        clone = FakeAligner(self.hits, self.delay, _root=self.root)
        self.root.clones.append(clone)
        return clone

    def map(self, sequence):
        if self.released: raise RuntimeError('Mapping with a released handle')
        if self.delay: self.delay(sequence)
        return list(self.hits.get(sequence, []))

    def release(self):
        self.released = True


@pytest.fixture
def reference():
    return Reference([Record(b'ACGTACGTAC', b'ref')])


@pytest.fixture
def queries():
    return [Record(b'GTAC', b'q%d' % i) for i in range(20)]


@pytest.fixture
def aligner():
    return FakeAligner({b'GTAC': [AlignmentHit(b'ref', 2, '4M')]})
