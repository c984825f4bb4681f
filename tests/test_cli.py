import pytest

from fastalign import cli
from fastalign.external import AlignerError, AlignmentHit

from conftest import FakeAligner


@pytest.fixture
def files(tmp_path):
    (reference := tmp_path / 'ref.fasta').write_bytes(b'>chr1\nACGTA\n>chr2\nCGTAC\n')
    (queries := tmp_path / 'in.fasta').write_bytes(b'>q1\nGTAC\n>q2\nTAC\n')
    return reference, queries, tmp_path / 'out.fasta'


@pytest.fixture
def fake_minimap2(monkeypatch):
    class FakeMinimap2(FakeAligner):
        def __init__(self, reference, config=None):
            super().__init__({b'GTAC': [AlignmentHit(b'chr2', 1, '4M')], b'TAC': [AlignmentHit(b'chr1', 0, '1D3M')]})
        def __enter__(self): return self
        def __exit__(self, *args): self.release()

    monkeypatch.setattr(cli, 'Minimap2', FakeMinimap2)
    return FakeMinimap2


class TestParseArgs:
    def test_defaults(self, files):
        reference, queries, output = files
        args = cli.parse_args(['-i', str(queries), '-r', str(reference), '-o', str(output)])
        assert args.threads == 1
        assert not args.ordered and not args.fail_fast
        assert args.width == 0

    def test_stdin_input_skips_existence_check(self, files):
        reference, _, output = files
        assert cli.parse_args(['-i', '-', '-r', str(reference), '-o', str(output)]).input == '-'

    def test_missing_input(self, files, tmp_path, capsys):
        reference, _, output = files
        with pytest.raises(SystemExit) as exc:
            cli.parse_args(['-i', str(tmp_path / 'nope.fasta'), '-r', str(reference), '-o', str(output)])
        assert exc.value.code == 2
        assert 'File does not exist' in capsys.readouterr().err

    def test_reference_cannot_be_stdin(self, files):
        _, queries, output = files
        with pytest.raises(SystemExit):
            cli.parse_args(['-i', str(queries), '-r', '-', '-o', str(output)])

    @pytest.mark.parametrize('threads', ['0', '-2', 'two'])
    def test_invalid_threads(self, files, threads):
        reference, queries, output = files
        with pytest.raises(SystemExit):
            cli.parse_args(['-i', str(queries), '-r', str(reference), '-o', str(output), '-t', threads])


class TestMain:
    def test_success(self, files, fake_minimap2):
        reference, queries, output = files
        argv = ['-i', str(queries), '-r', str(reference), '-o', str(output), '-t', '2', '--ordered']
        assert cli.main(argv) == 0
        assert output.read_bytes() == b'>q1\n------GTAC\n>q2\n-TAC------\n'

    def test_record_error(self, files, fake_minimap2, capsys):
        reference, queries, output = files
        queries.write_bytes(b'>q1\nGTAC\n>lost\nGGGG\n')
        assert cli.main(['-i', str(queries), '-r', str(reference), '-o', str(output)]) == 1
        err = capsys.readouterr().err
        assert err.startswith('Error: ') and 'lost' in err
        assert output.read_bytes() == b'>q1\n------GTAC\n'

    def test_setup_error(self, files, monkeypatch, capsys):
        reference, queries, output = files

        def broken(*args, **kwargs): raise AlignerError('Failed to build minimap2 index')

        monkeypatch.setattr(cli, 'Minimap2', broken)
        assert cli.main(['-i', str(queries), '-r', str(reference), '-o', str(output)]) == 1
        assert 'Failed to build minimap2 index' in capsys.readouterr().err
