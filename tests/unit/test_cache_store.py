import pytest

from bundle_gate.core.cache_store import CacheStoreError, FileDigestStore, MemoryDigestStore

DIGEST = "a" * 64


def test_missing_record_reads_as_none(tmp_path):
    assert FileDigestStore(tmp_path / ".bundle.hash").get() is None


def test_record_is_trimmed_on_read(tmp_path):
    path = tmp_path / ".bundle.hash"
    path.write_text(f"  {DIGEST}\r\n", encoding="utf-8")

    assert FileDigestStore(path).get() == DIGEST


@pytest.mark.parametrize("content", ["", "not-a-digest", "A" * 64, "a" * 63])
def test_malformed_record_reads_as_none(tmp_path, content):
    path = tmp_path / ".bundle.hash"
    path.write_text(content, encoding="utf-8")

    assert FileDigestStore(path).get() is None


def test_undecodable_record_reads_as_none(tmp_path):
    path = tmp_path / ".bundle.hash"
    path.write_bytes(b"\xff\xfe\x00garbage")

    assert FileDigestStore(path).get() is None


def test_set_overwrites_and_creates_parents(tmp_path):
    path = tmp_path / "nested" / "dir" / ".bundle.hash"
    store = FileDigestStore(path)

    store.set("b" * 64)
    store.set(DIGEST)

    assert path.read_text(encoding="utf-8") == DIGEST + "\n"
    assert store.get() == DIGEST


def test_set_failure_is_not_swallowed(tmp_path):
    # Un répertoire à l'emplacement du fichier rend l'écriture impossible
    path = tmp_path / ".bundle.hash"
    path.mkdir()

    with pytest.raises(CacheStoreError):
        FileDigestStore(path).set(DIGEST)


def test_memory_store_counts_writes():
    store = MemoryDigestStore()
    assert store.get() is None

    store.set(DIGEST)

    assert store.get() == DIGEST
    assert store.writes == 1
