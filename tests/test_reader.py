import logging

import pytest

from schemashift.exceptions import NoChangeError, ShortLimitError
from schemashift.reader import Reader
from schemashift.source.migrations import Direction, Migration, Migrations
from schemashift.source.stub import StubSource

N = FileNotFoundError
NC = NoChangeError


def _stub_migrations():
    # |  1  |  -  |  3  |  4  |  5  |  -  |  7  |
    # | u d |  -  | u   | u d |   d |  -  | u d |
    ms = Migrations()
    ms.append(Migration(1, "CREATE 1", Direction.UP))
    ms.append(Migration(1, "DROP 1", Direction.DOWN))
    ms.append(Migration(3, "CREATE 3", Direction.UP))
    ms.append(Migration(4, "CREATE 4", Direction.UP))
    ms.append(Migration(4, "DROP 4", Direction.DOWN))
    ms.append(Migration(5, "DROP 5", Direction.DOWN))
    ms.append(Migration(7, "CREATE 7", Direction.UP))
    ms.append(Migration(7, "DROP 7", Direction.DOWN))
    return ms


@pytest.fixture
def reader():
    return Reader(StubSource(url="stub://", migrations=_stub_migrations()), None, None, 10)


def _collect(gen):
    got = []
    try:
        for migration in gen:
            got.append((migration.version, migration.target_version))
    except Exception as err:
        return got, err
    return got, None


def _check(got, err, expect_err, expect_seq):
    if expect_err is None:
        assert err is None
    elif isinstance(expect_err, type):
        assert isinstance(err, expect_err)
    else:
        assert err == expect_err
    if expect_seq:
        assert got == expect_seq


def u(*versions):
    return [(v, v) for v in versions]


READ_CASES = [
    (-1, -1, NC, None),
    (-1, 0, N, None),
    (-1, 1, None, u(1)),
    (-1, 2, N, None),
    (-1, 3, None, u(1, 3)),
    (-1, 4, None, u(1, 3, 4)),
    (-1, 5, None, u(1, 3, 4, 5)),
    (-1, 6, N, None),
    (-1, 7, None, u(1, 3, 4, 5, 7)),
    (-1, 8, N, None),
    (1, -1, None, [(1, -1)]),
    (1, 0, N, None),
    (1, 1, NC, None),
    (1, 2, N, None),
    (1, 3, None, u(3)),
    (1, 4, None, u(3, 4)),
    (1, 5, None, u(3, 4, 5)),
    (1, 6, N, None),
    (1, 7, None, u(3, 4, 5, 7)),
    (1, 8, N, None),
    (3, -1, None, [(3, 1), (1, -1)]),
    (3, 0, N, None),
    (3, 1, None, [(3, 1)]),
    (3, 2, N, None),
    (3, 3, NC, None),
    (3, 4, None, u(4)),
    (3, 5, None, u(4, 5)),
    (3, 6, N, None),
    (3, 7, None, u(4, 5, 7)),
    (3, 8, N, None),
    (4, -1, None, [(4, 3), (3, 1), (1, -1)]),
    (4, 0, N, None),
    (4, 1, None, [(4, 3), (3, 1)]),
    (4, 2, N, None),
    (4, 3, None, [(4, 3)]),
    (4, 4, NC, None),
    (4, 5, None, u(5)),
    (4, 6, N, None),
    (4, 7, None, u(5, 7)),
    (4, 8, N, None),
    (5, -1, None, [(5, 4), (4, 3), (3, 1), (1, -1)]),
    (5, 0, N, None),
    (5, 1, None, [(5, 4), (4, 3), (3, 1)]),
    (5, 2, N, None),
    (5, 3, None, [(5, 4), (4, 3)]),
    (5, 4, None, [(5, 4)]),
    (5, 5, NC, None),
    (5, 6, N, None),
    (5, 7, None, u(7)),
    (5, 8, N, None),
    (7, -1, None, [(7, 5), (5, 4), (4, 3), (3, 1), (1, -1)]),
    (7, 0, N, None),
    (7, 1, None, [(7, 5), (5, 4), (4, 3), (3, 1)]),
    (7, 2, N, None),
    (7, 3, None, [(7, 5), (5, 4), (4, 3)]),
    (7, 4, None, [(7, 5), (5, 4)]),
    (7, 5, None, [(7, 5)]),
    (7, 6, N, None),
    (7, 7, NC, None),
    (7, 8, N, None),
] + [(f, t, N, None) for f in (0, 2, 6, 8) for t in range(-1, 9)]


@pytest.mark.parametrize("from_version,to_version,expect_err,expect_seq", READ_CASES)
def test_read(reader, from_version, to_version, expect_err, expect_seq):
    got, err = _collect(reader.read(from_version, to_version))
    _check(got, err, expect_err, expect_seq)


READ_UP_CASES = [
    (-1, -1, None, u(1, 3, 4, 5, 7)),
    (-1, 0, NC, None),
    (-1, 1, None, u(1)),
    (-1, 2, None, u(1, 3)),
    (1, -1, None, u(3, 4, 5, 7)),
    (1, 0, NC, None),
    (1, 1, None, u(3)),
    (1, 2, None, u(3, 4)),
    (3, -1, None, u(4, 5, 7)),
    (3, 0, NC, None),
    (3, 1, None, u(4)),
    (3, 2, None, u(4, 5)),
    (4, -1, None, u(5, 7)),
    (4, 0, NC, None),
    (4, 1, None, u(5)),
    (4, 2, None, u(5, 7)),
    (5, -1, None, u(7)),
    (5, 0, NC, None),
    (5, 1, None, u(7)),
    (5, 2, ShortLimitError(1), u(7)),
    (7, -1, NC, None),
    (7, 0, NC, None),
    (7, 1, N, None),
    (7, 2, N, None),
] + [(f, limit, N, None) for f in (0, 2, 6, 8) for limit in (-1, 0, 1, 2)]


@pytest.mark.parametrize("from_version,limit,expect_err,expect_seq", READ_UP_CASES)
def test_read_up(reader, from_version, limit, expect_err, expect_seq):
    got, err = _collect(reader.read_up(from_version, limit))
    _check(got, err, expect_err, expect_seq)


READ_DOWN_CASES = [
    (-1, -1, NC, None),
    (-1, 0, NC, None),
    (-1, 1, N, None),
    (-1, 2, N, None),
    (1, -1, None, [(1, -1)]),
    (1, 0, NC, None),
    (1, 1, None, [(1, -1)]),
    (1, 2, ShortLimitError(1), [(1, -1)]),
    (3, -1, None, [(3, 1), (1, -1)]),
    (3, 0, NC, None),
    (3, 1, None, [(3, 1)]),
    (3, 2, None, [(3, 1), (1, -1)]),
    (4, -1, None, [(4, 3), (3, 1), (1, -1)]),
    (4, 0, NC, None),
    (4, 1, None, [(4, 3)]),
    (4, 2, None, [(4, 3), (3, 1)]),
    (5, -1, None, [(5, 4), (4, 3), (3, 1), (1, -1)]),
    (5, 0, NC, None),
    (5, 1, None, [(5, 4)]),
    (5, 2, None, [(5, 4), (4, 3)]),
    (7, -1, None, [(7, 5), (5, 4), (4, 3), (3, 1), (1, -1)]),
    (7, 0, NC, None),
    (7, 1, None, [(7, 5)]),
    (7, 2, None, [(7, 5), (5, 4)]),
] + [(f, limit, N, None) for f in (0, 2, 6, 8) for limit in (-1, 0, 1, 2)]


@pytest.mark.parametrize("from_version,limit,expect_err,expect_seq", READ_DOWN_CASES)
def test_read_down(reader, from_version, limit, expect_err, expect_seq):
    got, err = _collect(reader.read_down(from_version, limit))
    _check(got, err, expect_err, expect_seq)


def test_read_buffers_bodies(reader):
    bodies = [m.buffered_body.read() for m in reader.read(-1, 4)]
    assert bodies == [b"CREATE 1", b"CREATE 3", b"CREATE 4"]


def test_new_migration_without_body_is_nil_migration(reader):
    migration = reader.new_migration(5, 5)
    assert migration.body is None
    assert migration.identifier == "<empty>"
    assert migration.log_string() == "5/u <empty>"


def test_new_migration_down_reads_down_body(reader):
    migration = reader.new_migration(4, 3)
    assert migration.identifier == "4.down.stub"
    assert migration.body.read() == b"DROP 4"


def test_version_exists_accepts_down_only(reader):
    assert reader.version_exists(5) is None


def test_version_exists_missing_logs_and_raises(caplog):
    logger = logging.getLogger("schemashift.test")
    source = StubSource(url="stub://", migrations=_stub_migrations())
    reader = Reader(source, None, logger, 10)
    with caplog.at_level(logging.ERROR, logger="schemashift.test"):
        with pytest.raises(FileNotFoundError, match="no migration found for version 2"):
            reader.version_exists(2)
    assert "no migration found for version 2" in caplog.text


def test_stop_yields_nothing():
    source = StubSource(url="stub://", migrations=_stub_migrations())
    reader = Reader(source, lambda: True, None, 10)
    assert list(reader.read_up(1, -1)) == []
    assert list(reader.read(7, -1)) == []


def test_stop_after_first_migration():
    source = StubSource(url="stub://", migrations=_stub_migrations())
    calls = []

    def should_stop():
        calls.append(None)
        return len(calls) > 1

    reader = Reader(source, should_stop, None, 10)
    got = [(m.version, m.target_version) for m in reader.read_up(1, -1)]
    assert got == [(3, 3)]


def test_verbose_logging_announces_buffering(caplog):
    logger = logging.getLogger("schemashift.verbose")
    source = StubSource(url="stub://", migrations=_stub_migrations())
    reader = Reader(source, None, logger, 10)
    with caplog.at_level(logging.DEBUG, logger="schemashift.verbose"):
        reader.new_migration(1, 1)
        reader.new_migration(5, 5)
    assert "Start buffering 1/u 1.up.stub" in caplog.text
    assert "Scheduled 5/u <empty>" in caplog.text