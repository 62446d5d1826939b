from liblet.commit import CommitGraph
from liblet.merge import FileAction, FileMerge, find_split_point, merge_blob_text, plan_merge, render_conflict
from liblet.objects import ObjectStore


def _linear(graph: CommitGraph, parent: str, *messages: str) -> list[str]:
    digests = []
    for i, message in enumerate(messages):
        parent = graph.create_child(message, [parent], f'2024-01-01 00:00:{i + 1:02d}', {}).digest
        digests.append(parent)
    return digests


def test_split_point_of_diverged_branches() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    base, = _linear(graph, root.digest, 'base')
    ours = _linear(graph, base, 'o1', 'o2')
    theirs = _linear(graph, base, 't1')

    assert find_split_point(graph, ours[-1], theirs[-1]) == base
    assert find_split_point(graph, theirs[-1], ours[-1]) == base


def test_split_point_of_ancestor_is_the_ancestor() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    first, second = _linear(graph, root.digest, 'first', 'second')

    assert find_split_point(graph, second, first) == first
    assert find_split_point(graph, first, second) == first
    assert find_split_point(graph, second, second) == second


def test_split_point_ignores_timestamps() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    old = graph.create_child('later in history, earlier on the clock', [root.digest], '2000-01-01 00:00:00', {})
    ours = graph.create_child('ours', [old.digest], '1999-01-01 00:00:00', {})
    theirs = graph.create_child('theirs', [old.digest], '1998-01-01 00:00:00', {})

    assert find_split_point(graph, ours.digest, theirs.digest) == old.digest


def test_split_point_follows_second_parents() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    main, = _linear(graph, root.digest, 'main')
    side = _linear(graph, root.digest, 'side 1', 'side 2')
    merge = graph.create_child('merge', [main, side[-1]], '2024-01-01 00:01:00', {})
    more_side, = _linear(graph, side[-1], 'side 3')

    assert find_split_point(graph, merge.digest, more_side) == side[-1]


def test_split_point_drops_ancestors_of_other_candidates() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    _, tip = _linear(graph, root.digest, 'middle', 'tip')
    # Both sides reach the root in one step, but the root is behind the tip.
    one = graph.create_child('one', [tip, root.digest], '2024-01-01 00:01:00', {})
    two = graph.create_child('two', [tip, root.digest], '2024-01-01 00:01:01', {})

    assert find_split_point(graph, one.digest, two.digest) == tip


def test_criss_cross_tie_goes_to_smallest_digest() -> None:
    graph = CommitGraph()
    root = graph.create_root('initial commit', '2024-01-01 00:00:00')
    left, = _linear(graph, root.digest, 'left')
    right, = _linear(graph, root.digest, 'right')
    cross_one = graph.create_child('cross one', [left, right], '2024-01-01 00:01:00', {})
    cross_two = graph.create_child('cross two', [right, left], '2024-01-01 00:01:01', {})

    assert find_split_point(graph, cross_one.digest, cross_two.digest) == min(left, right)
    assert find_split_point(graph, cross_two.digest, cross_one.digest) == min(left, right)


def test_render_conflict() -> None:
    assert render_conflict(b'C', b'B') == b'<<<<<<< HEAD\nC\n=======\nB\n>>>>>>>\n'
    assert render_conflict(b'C\n', None) == b'<<<<<<< HEAD\nC\n=======\n>>>>>>>\n'
    assert render_conflict(None, b'B\n') == b'<<<<<<< HEAD\n=======\nB\n>>>>>>>\n'


def test_merge_blob_text_combines_disjoint_changes() -> None:
    merged = merge_blob_text(b'1\n2\n3\n', b'one\n2\n3\n', b'1\n2\nthree\n', 'topic')

    assert merged == (b'one\n2\nthree\n', False)


def test_merge_blob_text_marks_overlapping_changes() -> None:
    merged = merge_blob_text(b'x\n', b'y\n', b'z\n', 'topic')

    assert merged == (b'<<<<<<< HEAD\ny\n=======\nz\n>>>>>>> topic\n', True)


def test_merge_blob_text_rejects_binary_content() -> None:
    assert merge_blob_text(b'x\n', b'\xff\xfe', b'z\n', 'topic') is None


def test_plan_merge_file_rules(store: ObjectStore) -> None:
    a = store.put(b'A\n')
    b = store.put(b'B\n')
    c = store.put(b'C\n')

    base = {'same.txt': a, 'theirs_changed.txt': a, 'ours_changed.txt': a, 'both_same.txt': a,
            'theirs_deleted.txt': a, 'ours_deleted.txt': a, 'both_deleted.txt': a,
            'conflict.txt': a, 'ours_deleted_theirs_changed.txt': a}
    ours = {'same.txt': a, 'theirs_changed.txt': a, 'ours_changed.txt': b, 'both_same.txt': b,
            'theirs_deleted.txt': a, 'conflict.txt': b, 'ours_added.txt': b, 'both_added_same.txt': c,
            'both_added_differently.txt': b}
    theirs = {'same.txt': a, 'theirs_changed.txt': b, 'ours_changed.txt': a, 'both_same.txt': b,
              'ours_deleted.txt': a, 'conflict.txt': c, 'theirs_added.txt': c, 'both_added_same.txt': c,
              'both_added_differently.txt': c, 'ours_deleted_theirs_changed.txt': b}

    plan = plan_merge(store, base, ours, theirs, theirs_label='topic')

    assert plan == [
        FileMerge('both_added_differently.txt', FileAction.CONFLICT,
                  content=b'<<<<<<< HEAD\nB\n=======\nC\n>>>>>>>\n'),
        FileMerge('conflict.txt', FileAction.CONFLICT, content=b'<<<<<<< HEAD\nB\n=======\nC\n>>>>>>>\n'),
        FileMerge('ours_deleted_theirs_changed.txt', FileAction.CONFLICT,
                  content=b'<<<<<<< HEAD\n=======\nB\n>>>>>>>\n'),
        FileMerge('theirs_added.txt', FileAction.TAKE_THEIRS, c),
        FileMerge('theirs_changed.txt', FileAction.TAKE_THEIRS, b),
        FileMerge('theirs_deleted.txt', FileAction.DELETE),
    ]


def test_plan_merge_with_line_merge(store: ObjectStore) -> None:
    base = {'clean.txt': store.put(b'1\n2\n3\n'), 'clash.txt': store.put(b'x\n')}
    ours = {'clean.txt': store.put(b'one\n2\n3\n'), 'clash.txt': store.put(b'y\n')}
    theirs = {'clean.txt': store.put(b'1\n2\nthree\n'), 'clash.txt': store.put(b'z\n')}

    plan = plan_merge(store, base, ours, theirs, theirs_label='topic', line_merge=True)

    clash, clean = plan
    assert clash == FileMerge('clash.txt', FileAction.CONFLICT,
                              content=b'<<<<<<< HEAD\ny\n=======\nz\n>>>>>>> topic\n')
    assert clean.action == FileAction.MERGED
    assert clean.content == b'one\n2\nthree\n'
    assert store.get(clean.digest) == b'one\n2\nthree\n'


def test_plan_merge_line_merge_leaves_deletions_as_conflicts(store: ObjectStore) -> None:
    base = {'f.txt': store.put(b'A\n')}
    ours = {'f.txt': store.put(b'B\n')}

    plan = plan_merge(store, base, ours, {}, theirs_label='topic', line_merge=True)

    assert plan == [FileMerge('f.txt', FileAction.CONFLICT, content=b'<<<<<<< HEAD\nB\n=======\n>>>>>>>\n')]
