from pathlib import Path

from liblet.commit import CommitGraph
from liblet.errors import FileNotInCommitError, UntrackedObstructionError
from liblet.objects import ObjectStore
from liblet.working_tree import WorkingTree
from pytest import fixture, raises


@fixture
def tree(tmp_path: Path, store: ObjectStore) -> WorkingTree:
    root = tmp_path / 'work'
    (root / '.liblet').mkdir(parents=True)
    return WorkingTree(root, store, ignored=('.liblet',))


def test_normalize_relative_and_absolute_paths(tree: WorkingTree) -> None:
    assert tree.normalize('a.txt') == 'a.txt'
    assert tree.normalize('./dir/b.txt') == 'dir/b.txt'
    assert tree.normalize(tree.root / 'dir' / 'c.txt') == 'dir/c.txt'


def test_normalize_rejects_escaping_and_ignored_paths(tree: WorkingTree, tmp_path: Path) -> None:
    for bad in ('', '.', '../outside.txt', 'dir/../../x', '.liblet/state.json'):
        with raises(ValueError):
            tree.normalize(bad)

    with raises(ValueError):
        tree.normalize(tmp_path / 'elsewhere.txt')


def test_files_skips_ignored_directory(tree: WorkingTree) -> None:
    (tree.root / '.liblet' / 'state.json').write_text('{}')
    tree.write_bytes('b.txt', b'b')
    tree.write_bytes('dir/a.txt', b'a')
    tree.write_bytes('dir/sub/c.txt', b'c')

    assert tree.files() == ['b.txt', 'dir/a.txt', 'dir/sub/c.txt']


def test_delete_prunes_empty_parents(tree: WorkingTree) -> None:
    tree.write_bytes('dir/sub/c.txt', b'c')
    tree.write_bytes('dir/keep.txt', b'k')

    tree.delete('dir/sub/c.txt')

    assert not (tree.root / 'dir' / 'sub').exists()
    assert (tree.root / 'dir').is_dir()
    assert tree.root.is_dir()

    tree.delete('dir/keep.txt')
    tree.delete('missing.txt')

    assert not (tree.root / 'dir').exists()
    assert tree.root.is_dir()


def test_restore_one(tree: WorkingTree, store: ObjectStore) -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    commit = graph.create_child('c', [root.digest], '2024-01-01 00:00:01', {'f.txt': store.put(b'committed')})
    tree.write_bytes('f.txt', b'edited')

    tree.restore_one(commit, 'f.txt')

    assert tree.path('f.txt').read_bytes() == b'committed'
    with raises(FileNotInCommitError):
        tree.restore_one(commit, 'g.txt')


def test_safe_switch_replaces_snapshot(tree: WorkingTree, store: ObjectStore) -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    old = graph.create_child('old', [root.digest], '2024-01-01 00:00:01',
                             {'a.txt': store.put(b'a'), 'shared.txt': store.put(b'old')})
    new = graph.create_child('new', [root.digest], '2024-01-01 00:00:02',
                             {'b/b.txt': store.put(b'b'), 'shared.txt': store.put(b'new')})
    tree.restore_all(old)
    tree.write_bytes('untracked.txt', b'mine')

    tree.safe_switch(old, new)

    assert tree.files() == ['b/b.txt', 'shared.txt', 'untracked.txt']
    assert tree.path('shared.txt').read_bytes() == b'new'
    assert tree.path('untracked.txt').read_bytes() == b'mine'


def test_safe_switch_refuses_to_clobber_untracked_file(tree: WorkingTree, store: ObjectStore) -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    old = graph.create_child('old', [root.digest], '2024-01-01 00:00:01', {'a.txt': store.put(b'a')})
    new = graph.create_child('new', [root.digest], '2024-01-01 00:00:02', {'b.txt': store.put(b'theirs')})
    tree.restore_all(old)
    tree.write_bytes('b.txt', b'mine')

    with raises(UntrackedObstructionError) as excinfo:
        tree.safe_switch(old, new)

    assert excinfo.value.paths == ['b.txt']
    assert tree.path('a.txt').read_bytes() == b'a'
    assert tree.path('b.txt').read_bytes() == b'mine'
