import numpy as np
import pytest

from fastalign.containers.record import Record, Reference
from fastalign.core.gapped import materialize
from fastalign.external import Minimap2, AlignerConfig, AlignerError, AlignmentHit
from fastalign.pipeline import Pipeline


@pytest.fixture(scope='module')
def contigs():
    rng = np.random.default_rng(42)
    return [bytes(rng.choice(list(b'ACGT'), size=n).astype(np.uint8)) for n in (3000, 2000)]


@pytest.fixture(scope='module')
def reference_file(tmp_path_factory, contigs):
    path = tmp_path_factory.mktemp('ref') / 'ref.fasta'
    path.write_bytes(b''.join(b'>ctg%d\n%s\n' % (i, seq) for i, seq in enumerate(contigs, 1)))
    return path


@pytest.fixture(scope='module')
def minimap2(reference_file):
    with Minimap2(reference_file, AlignerConfig(n_threads=1)) as aligner:
        yield aligner


def assert_consistent(gapped: bytes, reference: bytes):
    assert len(gapped) == len(reference)
    assert all(g == r for g, r in zip(gapped, reference) if g != ord('-'))


class TestMinimap2:
    def test_config_defaults(self):
        config = AlignerConfig()
        assert config.preset == 'asm20'
        assert config.scoring[-1] == 0

    def test_missing_reference(self, tmp_path):
        with pytest.raises(AlignerError):
            Minimap2(tmp_path / 'missing.fasta')

    def test_map(self, minimap2, contigs):
        handle = minimap2.clone()
        hits = handle.map(contigs[0][500:1100])
        assert hits and hits[0].is_primary
        assert hits[0].target_name == b'ctg1'
        assert hits[0].cigar is not None
        gapped = materialize(contigs[0][500:1100], len(contigs[0]), hits[0].cigar, hits[0].target_start)
        assert_consistent(gapped, contigs[0])
        handle.release()

    def test_unmapped(self, minimap2):
        assert minimap2.clone().map(b'ACGT' * 5) == []

    def test_clones_are_independent(self, minimap2, contigs):
        first, second = minimap2.clone(), minimap2.clone()
        first.release()
        assert first.released
        assert second.map(contigs[1][100:700])
        assert not minimap2.released

    def test_secondary_hits_dropped(self):
        Hit = TestAlignmentHitFromMappy._Hit
        hits = [Hit(ctg='ctg1', r_st=0, cigar_str='4M', is_primary=1, strand=1, q_st=0, q_en=4),
                Hit(ctg='ctg2', r_st=9, cigar_str='4M', is_primary=0, strand=1, q_st=0, q_en=4)]

        class Index:
            def map(self, sequence, buf=None): return iter(hits)

        handle = Minimap2(_aligner=Index())
        assert handle.map(b'ACGT') == [AlignmentHit(b'ctg1', 0, '4M')]

    def test_released_handle(self, minimap2):
        handle = minimap2.clone()
        handle.release()
        with pytest.raises(AlignerError):
            handle.map(b'ACGT')
        with pytest.raises(AlignerError):
            handle.clone()

    def test_pipeline(self, minimap2, contigs, reference_file, tmp_path):
        reference = Reference.from_file(reference_file)
        flat = b''.join(contigs)
        queries = [Record(contigs[0][1000:1500], b'a'), Record(contigs[1][200:900], b'b'),
                   Record(contigs[1][1200:1800], b'c')]
        gapped = [Pipeline(minimap2, reference).align_record(q, minimap2.clone()) for q in queries]
        for record in gapped:
            assert_consistent(record.seq, flat)
        # Hits on the second contig land after the first one in the flattened reference
        assert gapped[1].seq[:len(contigs[0])] == b'-' * len(contigs[0])


class TestAlignmentHitFromMappy:
    class _Hit:
        def __init__(self, **kwargs): self.__dict__.update(kwargs)

    def test_clips_added(self):
        hit = self._Hit(ctg='chr1', r_st=10, cigar_str='5M', is_primary=1, strand=1, q_st=2, q_en=7)
        assert AlignmentHit.from_mappy(hit, 10) == AlignmentHit(b'chr1', 10, '2S5M3S', True, 1)

    def test_reverse_strand_clips_swapped(self):
        hit = self._Hit(ctg='chr1', r_st=0, cigar_str='5M', is_primary=0, strand=-1, q_st=2, q_en=7)
        assert AlignmentHit.from_mappy(hit, 10) == AlignmentHit(b'chr1', 0, '3S5M2S', False, -1)

    def test_missing_cigar(self):
        hit = self._Hit(ctg='chr1', r_st=0, cigar_str='', is_primary=1, strand=1, q_st=0, q_en=5)
        assert AlignmentHit.from_mappy(hit, 5).cigar is None
