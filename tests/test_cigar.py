import numpy as np
import pytest

from fastalign.core.cigar import Cigar, CigarOp, CigarOperation, CigarParseError, CigarError


class TestCigarParse:
    def test_all_operations(self):
        cigar = Cigar.parse('1M2I3D4N5S6H7P8=9X')
        assert [o.op for o in cigar] == list(CigarOp)
        assert [o.length for o in cigar] == list(range(1, 10))

    def test_multi_digit_counts(self):
        cigar = Cigar.parse('150M12D3M')
        assert list(cigar) == [CigarOperation(CigarOp.MATCH, 150), CigarOperation(CigarOp.DELETION, 12),
                               CigarOperation(CigarOp.MATCH, 3)]

    def test_bytes_input(self):
        assert Cigar.parse(b'3M1I') == Cigar.parse('3M1I')

    def test_parsed_cigar_passes_through(self):
        cigar = Cigar.parse('3M')
        assert Cigar.parse(cigar) is cigar

    def test_empty(self):
        cigar = Cigar.parse('')
        assert len(cigar) == 0
        assert cigar.query_length == 0 and cigar.target_length == 0

    def test_zero_length_operation(self):
        assert list(Cigar.parse('0M')) == [CigarOperation(CigarOp.MATCH, 0)]

    def test_unknown_operation_names_token(self):
        with pytest.raises(CigarParseError, match='5Z'):
            Cigar.parse('3M5Z')

    def test_missing_count(self):
        with pytest.raises(CigarParseError, match='count'):
            Cigar.parse('M3M')

    def test_non_numeric_count(self):
        with pytest.raises(CigarParseError, match='1.5M'):
            Cigar.parse('1.5M')

    def test_dangling_trailer(self):
        with pytest.raises(CigarParseError, match='trailing'):
            Cigar.parse('3M5')

    def test_unavailable_cigar(self):
        with pytest.raises(CigarParseError):
            Cigar.parse('*')


class TestCigarProperties:
    def test_lengths(self):
        cigar = Cigar.parse('2S3M1I2D4N1=1X5H')
        assert cigar.query_length == 2 + 3 + 1 + 1 + 1 + 5
        assert cigar.target_length == 3 + 2 + 4 + 1 + 1

    def test_str_round_trip(self):
        assert str(Cigar.parse('10M2D5M')) == '10M2D5M'

    def test_from_operations(self):
        cigar = Cigar.from_operations(CigarOperation(CigarOp.SOFT_CLIP, 2), CigarOperation(CigarOp.EQUAL, 4))
        assert str(cigar) == '2S4='

    def test_indexing(self):
        assert Cigar.parse('3M2D')[1] == CigarOperation(CigarOp.DELETION, 2)

    def test_mismatched_arrays(self):
        with pytest.raises(CigarError):
            Cigar(np.array([0], dtype=np.uint8), np.array([], dtype=np.int64))


class TestCigarOp:
    def test_symbols(self):
        assert ''.join(op.symbol for op in CigarOp) == 'MIDNSHP=X'

    def test_from_symbol(self):
        assert CigarOp.from_symbol('=') is CigarOp.EQUAL
        with pytest.raises(CigarParseError):
            CigarOp.from_symbol('Z')

    def test_consumption(self):
        assert CigarOp.MATCH.consumes_query and CigarOp.MATCH.consumes_target
        assert CigarOp.INSERTION.consumes_query and not CigarOp.INSERTION.consumes_target
        assert CigarOp.SKIP.consumes_target and not CigarOp.SKIP.consumes_query
        assert not CigarOp.PAD.consumes_query and not CigarOp.PAD.consumes_target
