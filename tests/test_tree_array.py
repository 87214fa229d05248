import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from SearchTree.TreeArray import (
    ArrayTree,
    BalancedTree,
    EmptyTreeError,
    OrderedTree,
    build_tree,
    fill_tree,
    remove_tree,
    warmup,
)


def check_structure(tree):
    """Walk the arena from the root, checking key ordering and cached heights.

    Returns {index: height} with heights recomputed from scratch (index 0 -> 0).
    """
    preorder = []
    stack = [(tree.root, None, None)] if tree.root else []
    while stack:
        index, low, high = stack.pop()
        key, left, right, _ = tree.get_node(index)
        assert low is None or key > low
        assert high is None or key < high
        preorder.append(index)
        if left:
            stack.append((left, low, key))
        if right:
            stack.append((right, key, high))

    heights = {0: 0}
    # children come after their parent in preorder
    for index in reversed(preorder):
        _, left, right, cached = tree.get_node(index)
        heights[index] = 1 + max(heights[left], heights[right])
        assert cached == heights[index]

    assert len(preorder) == tree.count
    return heights


def max_imbalance(tree, heights):
    worst = 0
    for index in heights:
        if index == 0:
            continue
        _, left, right, _ = tree.get_node(index)
        worst = max(worst, abs(heights[left] - heights[right]))
        assert tree.balance_factor(index) == heights[left] - heights[right]
    return worst


def root_key(tree):
    return tree.get_node(tree.root)[0]


def keys_of(tree):
    return tree.traverse_in_order().tolist()


@pytest.fixture(params=[OrderedTree, BalancedTree], ids=["ordered", "balanced"])
def make_tree(request):
    return request.param


class TestEmptyTree:
    def test_new_tree_is_empty(self, make_tree):
        tree = make_tree()
        assert tree.count == 0
        assert tree.root == 0
        assert tree.height == 0
        assert keys_of(tree) == []

    def test_find_min_on_empty_tree_raises(self, make_tree):
        with pytest.raises(EmptyTreeError):
            make_tree().find_min()

    def test_find_max_on_empty_tree_raises(self, make_tree):
        with pytest.raises(EmptyTreeError):
            make_tree().find_max()

    def test_empty_tree_error_is_a_lookup_error(self, make_tree):
        with pytest.raises(LookupError):
            make_tree().find_max()

    def test_delete_on_empty_tree(self, make_tree):
        tree = make_tree()
        assert not tree.delete(3)
        assert tree.count == 0

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            ArrayTree(-1, True)


class TestInsertDelete:
    def test_insert_keeps_order(self, make_tree):
        tree = make_tree()
        for key in [50, 30, 70, 20, 40, 60, 80]:
            assert tree.insert(key)
        assert keys_of(tree) == [20, 30, 40, 50, 60, 70, 80]
        assert tree.find_min() == 20
        assert tree.find_max() == 80

    def test_negative_keys(self, make_tree):
        tree = make_tree()
        for key in [0, -5, 12, -300, 7]:
            tree.insert(key)
        assert keys_of(tree) == [-300, -5, 0, 7, 12]
        assert tree.find_min() == -300

    def test_duplicate_insert_is_noop(self, make_tree):
        tree = make_tree()
        for key in [5, 3, 8]:
            tree.insert(key)
        before = keys_of(tree)
        assert not tree.insert(3)
        assert keys_of(tree) == before
        assert tree.count == 3

    def test_delete_absent_key_is_noop(self, make_tree):
        tree = make_tree()
        for key in [5, 3, 8, 1]:
            tree.insert(key)
        shape = [tree.get_node(i) for i in range(1, 5)]
        assert not tree.delete(4)
        assert [tree.get_node(i) for i in range(1, 5)] == shape
        assert tree.count == 4

    def test_delete_leaf_and_single_children(self, make_tree):
        tree = make_tree()
        for key in [5, 3, 8, 1, 9]:
            tree.insert(key)
        assert tree.delete(1)   # leaf
        assert tree.delete(8)   # only right child
        assert keys_of(tree) == [3, 5, 9]
        tree.insert(2)
        assert tree.delete(3)   # only left child
        assert keys_of(tree) == [2, 5, 9]
        check_structure(tree)

    def test_delete_two_children_promotes_successor(self):
        tree = OrderedTree()
        for key in [5, 3, 8, 7, 9, 6]:
            tree.insert(key)
        root = tree.root
        assert tree.delete(5)
        # the root row keeps its place and takes the successor's key
        assert tree.root == root
        assert root_key(tree) == 6
        assert keys_of(tree) == [3, 6, 7, 8, 9]
        check_structure(tree)

    def test_delete_root_until_empty(self, make_tree):
        tree = make_tree()
        for key in [2, 1, 3]:
            tree.insert(key)
        while tree.count:
            assert tree.delete(root_key(tree))
        assert tree.root == 0
        assert tree.height == 0

    def test_search_and_contains(self, make_tree):
        tree = make_tree()
        for key in [10, 4, 17]:
            tree.insert(key)
        index = tree.search(4)
        assert index != 0
        assert tree.get_node(index)[0] == 4
        assert tree.search(5) == 0
        assert tree.contains(17)
        assert not tree.contains(18)

    def test_traversal_returns_fresh_array(self, make_tree):
        tree = make_tree()
        for key in [3, 1, 2]:
            tree.insert(key)
        first = tree.traverse_in_order()
        first[:] = 0
        assert keys_of(tree) == [1, 2, 3]

    def test_arena_grows_past_capacity(self, make_tree):
        tree = make_tree(1)
        for key in range(100):
            tree.insert(key)
        assert tree.count == 100
        assert keys_of(tree) == list(range(100))
        check_structure(tree)

    def test_released_rows_are_reused(self, make_tree):
        tree = make_tree(10)
        for key in range(10):
            tree.insert(key)
        rows = tree.tree.shape[0]
        for key in range(0, 10, 2):
            tree.delete(key)
        for key in range(100, 105):
            tree.insert(key)
        assert tree.tree.shape[0] == rows
        assert tree.count == 10


class TestRotations:
    @pytest.mark.parametrize("keys", [
        [30, 20, 10],  # LL
        [30, 10, 20],  # LR
        [10, 20, 30],  # RR
        [10, 30, 20],  # RL
    ])
    def test_insert_rotations(self, keys):
        tree = BalancedTree()
        for key in keys:
            tree.insert(key)
        assert root_key(tree) == 20
        assert tree.height == 2
        assert keys_of(tree) == [10, 20, 30]

    def test_ordered_tree_never_rotates(self):
        tree = OrderedTree()
        for key in [10, 20, 30]:
            tree.insert(key)
        assert root_key(tree) == 10
        assert tree.height == 3

    def test_delete_double_rotation(self):
        tree = BalancedTree()
        for key in [10, 5, 15, 12]:
            tree.insert(key)
        # removing 5 leaves 10 right heavy with a left heavy right child
        tree.delete(5)
        assert root_key(tree) == 12
        assert keys_of(tree) == [10, 12, 15]
        assert max_imbalance(tree, check_structure(tree)) <= 1

    def test_delete_single_rotation_on_balanced_child(self):
        tree = BalancedTree()
        for key in [10, 5, 15, 12, 20]:
            tree.insert(key)
        tree.delete(5)
        assert root_key(tree) == 15
        assert keys_of(tree) == [10, 12, 15, 20]
        assert max_imbalance(tree, check_structure(tree)) <= 1

    def test_delete_rebalances_several_levels(self):
        # a minimal AVL tree of height 5 (Fibonacci shape): deleting from the
        # short side needs rotations at more than one ancestor
        tree = BalancedTree()
        for key in [8, 5, 11, 3, 7, 10, 12, 2, 4, 6, 9, 1]:
            tree.insert(key)
        assert tree.height == 5
        tree.delete(12)
        heights = check_structure(tree)
        assert max_imbalance(tree, heights) <= 1
        assert keys_of(tree) == list(range(1, 12))


class TestScenarios:
    def test_concrete_sequence(self):
        keys = [5, 3, 8, 1, 4, 7, 9]

        ordered = OrderedTree()
        balanced = BalancedTree()
        for key in keys:
            ordered.insert(key)
            balanced.insert(key)

        assert keys_of(ordered) == [1, 3, 4, 5, 7, 8, 9]
        assert keys_of(balanced) == [1, 3, 4, 5, 7, 8, 9]

        balanced.delete(5)
        assert keys_of(balanced) == [1, 3, 4, 7, 8, 9]
        assert max_imbalance(balanced, check_structure(balanced)) <= 1

    def test_ascending_insert_degenerates_only_without_balancing(self):
        ordered = OrderedTree()
        balanced = BalancedTree()
        for key in range(1, 1001):
            ordered.insert(key)
            balanced.insert(key)

        assert ordered.height == 1000
        index = ordered.root
        while index:
            _, left, right, _ = ordered.get_node(index)
            assert left == 0
            index = right

        assert balanced.height <= 15
        assert max_imbalance(balanced, check_structure(balanced)) <= 1

    def test_bulk_helpers(self, make_tree):
        keys = np.array([4, 9, 4, 1, 7, 9, 2], dtype=np.int64)
        tree = make_tree(keys.size)
        assert fill_tree(tree, keys) == 5
        assert keys_of(tree) == [1, 2, 4, 7, 9]
        assert remove_tree(tree, keys) == 5
        assert tree.count == 0
        assert tree.root == 0

    def test_build_tree(self):
        keys = np.arange(64, dtype=np.int64)
        tree = build_tree(keys, True)
        assert tree.balanced
        assert tree.count == 64
        assert tree.height == 7
        assert not build_tree(keys, False).balanced

    def test_warmup(self):
        assert warmup()


operations = st.lists(
    st.tuples(st.sampled_from(["insert", "delete"]), st.integers(-40, 40)),
    max_size=120,
)


@settings(deadline=None, max_examples=150)
@given(operations)
def test_ordered_tree_matches_set(ops):
    tree = OrderedTree(4)
    model = set()
    for op, key in ops:
        if op == "insert":
            assert tree.insert(key) == (key not in model)
            model.add(key)
        else:
            assert tree.delete(key) == (key in model)
            model.discard(key)
        assert keys_of(tree) == sorted(model)
    check_structure(tree)


@settings(deadline=None, max_examples=150)
@given(operations)
def test_balanced_tree_stays_balanced(ops):
    tree = BalancedTree(4)
    model = set()
    for op, key in ops:
        if op == "insert":
            tree.insert(key)
            model.add(key)
        else:
            tree.delete(key)
            model.discard(key)
        assert max_imbalance(tree, check_structure(tree)) <= 1
        assert keys_of(tree) == sorted(model)
        if model:
            assert tree.find_min() == min(model)
            assert tree.find_max() == max(model)


@settings(deadline=None)
@given(st.sets(st.integers(-1000, 1000), max_size=60), st.integers(-1000, 1000))
def test_insert_then_delete_restores_keys(keys, extra):
    for make in (OrderedTree, BalancedTree):
        tree = make()
        for key in keys:
            tree.insert(key)
        before = keys_of(tree)
        inserted = tree.insert(extra)
        if inserted:
            tree.delete(extra)
        assert keys_of(tree) == before
