from pathlib import Path

from liblet.constants import HASH_LENGTH
from liblet.errors import ObjectMissingError
from liblet.objects import ObjectStore
from liblet.plumbing import hash_bytes
from pytest import raises


def test_put_returns_digest_of_content(store: ObjectStore) -> None:
    digest = store.put(b'hello')

    assert digest == hash_bytes(b'hello')
    assert len(digest) == HASH_LENGTH
    assert store.get(digest) == b'hello'


def test_put_identical_content_is_deduplicated(store: ObjectStore) -> None:
    first = store.put(b'same bytes')
    second = store.put(b'same bytes')

    assert first == second
    assert set(store.objects_dir.rglob('*')) == {store.object_path(first).parent, store.object_path(first)}


def test_put_different_content_yields_different_digests(store: ObjectStore) -> None:
    assert store.put(b'one') != store.put(b'two')


def test_objects_are_fanned_out_by_digest_prefix(store: ObjectStore) -> None:
    digest = store.put(b'layout')

    assert store.object_path(digest) == store.objects_dir / digest[:2] / digest
    assert store.object_path(digest).read_bytes() == b'layout'


def test_put_file_stores_file_content(store: ObjectStore, tmp_path: Path) -> None:
    source = tmp_path / 'source.bin'
    source.write_bytes(b'\x00\x01binary\xff')

    digest = store.put_file(source)

    assert store.get(digest) == b'\x00\x01binary\xff'


def test_empty_content_can_be_stored(store: ObjectStore) -> None:
    digest = store.put(b'')

    assert digest in store
    assert store.get(digest) == b''


def test_get_unknown_digest_raises_object_missing(store: ObjectStore) -> None:
    with raises(ObjectMissingError):
        store.get('f' * HASH_LENGTH)


def test_contains(store: ObjectStore) -> None:
    digest = store.put(b'present')

    assert digest in store
    assert 'a' * HASH_LENGTH not in store
    assert '' not in store
    assert None not in store


def test_put_leaves_no_temporary_files(store: ObjectStore) -> None:
    digest = store.put(b'content')

    assert [p.name for p in store.object_path(digest).parent.iterdir()] == [digest]
