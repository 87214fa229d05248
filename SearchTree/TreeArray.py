import numpy as np
from numba import njit, int64, boolean
from numba.experimental import jitclass
from typing import Tuple

from SearchTree.config import DEFAULT_CAPACITY



# Arena layout, one row per node:
#     ROW[4]: [key | left | right | height]
#     Row 0 is the "absent" sentinel and is never written, so reading
#     left/right/height through index 0 always yields 0.
#     0 < left, right < tree.shape[0]
KEY    = 0
LEFT   = 1
RIGHT  = 2
HEIGHT = 3
FIELDS = 4



class EmptyTreeError(LookupError):
    """Raised by find_min() / find_max() on a tree holding no keys."""



# ---------- JIT-Compiled Row Accessors / Updaters ----------
@njit(inline="always")
def set_node(
    tree:   np.ndarray,
    index:  np.int64,
    key:    np.int64,
    left:   np.int64,
    right:  np.int64,
    height: np.int64

) -> None:

    """
    Write all four fields of the row at `index`.
    """

    tree[index, KEY]    = key
    tree[index, LEFT]   = left
    tree[index, RIGHT]  = right
    tree[index, HEIGHT] = height

@njit(inline="always")
def get_node(
    tree:  np.ndarray,
    index: np.int64

) -> Tuple[np.int64, np.int64, np.int64, np.int64]:

    """
    Get a node from tree by index as (key, left, right, height).
    """

    return tree[index, KEY], tree[index, LEFT], tree[index, RIGHT], tree[index, HEIGHT]

@njit(inline="always")
def _update_height(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Recompute the cached height of `index` from its children and return it.
    Assumes the children's cached heights are valid.
    """

    h_l = tree[tree[index, LEFT], HEIGHT]
    h_r = tree[tree[index, RIGHT], HEIGHT]

    new_height          = max(h_l, h_r) + 1
    tree[index, HEIGHT] = new_height

    return new_height

@njit(inline="always")
def _balance_factor(
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    height(left) - height(right). Positive is left heavy, negative is right heavy.
    """

    return tree[tree[index, LEFT], HEIGHT] - tree[tree[index, RIGHT], HEIGHT]

@njit(inline="always")
def _allocate(
    tree:          np.ndarray,
    free:          np.int64,
    free_list:     np.ndarray,
    free_list_top: np.int64,
    key:           np.int64

) -> Tuple[np.int64, np.int64, np.int64]:

    """
    Take a row for a new leaf holding `key`. Released rows are reused first.

    :return: (index, free, free_list_top)
    """

    if free_list_top > 0:
        free_list_top -= 1
        index = free_list[free_list_top]
    else:
        index = free
        free += 1

    set_node(tree, index, key, 0, 0, 1)

    return index, free, free_list_top

@njit(inline="always")
def _relink(
    tree:       np.ndarray,
    path:       np.ndarray,
    depth:      np.int64,
    root:       np.int64,
    old_child:  np.int64,
    new_child:  np.int64

) -> np.int64:

    """
    Point whichever slot held `old_child` at `new_child`. The slot is either a
    child link of path[depth - 1] or, at depth 0, the root. Returns the root.
    """

    if depth == 0:
        return new_child

    parent = path[depth - 1]
    if tree[parent, LEFT] == old_child:
        tree[parent, LEFT] = new_child
    else:
        tree[parent, RIGHT] = new_child

    return root



# ---------- JIT-Compiled Tree Core Operations ----------
@njit(inline="always")
def get_successor(
    tree:       np.ndarray,
    index:      np.int64,
    path:       np.ndarray,
    path_index: np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Locates the in-order successor of a node and extends the traversal path.

    The in-order successor is the smallest node in the right subtree. This
    moves to the right child and then follows left links to the leftmost node,
    recording every visited node in `path` so that the whole lineage gets
    rebalanced after the successor is spliced out.

    Args:
        tree (np.ndarray): 2D array [N, 4] holding the node rows.
        index (np.int64): The node whose successor is needed. Must have a right child.
        path (np.ndarray): Array storing the traversal path for rebalancing.
        path_index (np.int64): The current write position in the path array.

    Returns:
        Tuple[np.int64, np.int64]:
            - successor_index: The index of the in-order successor.
            - updated_path_index: The new path_index after adding the successor's lineage.
    """

    curr = tree[index, RIGHT]

    while curr != 0:
        path[path_index] = curr
        path_index += 1
        curr = tree[curr, LEFT]

    return path[path_index - 1], path_index

@njit(inline="always")
def right_rotation( # SRR: Single Right Rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Perform a single right rotation (SRR) at `index`.

    The left child becomes the root of the subtree, `index` becomes its right
    child, and the left child's former right subtree becomes the left subtree
    of `index`. Used when the left side is over-heavy.

    :param tree: Arena holding the node rows
    :type tree: np.ndarray
    :param index: Index of the node to rotate
    :type index: np.int64
    :return: Index of the new root of the rotated subtree
    :rtype: np.int64
    """

    left_index = tree[index, LEFT]

    # Rotate
    tree[index, LEFT]       = tree[left_index, RIGHT]
    tree[left_index, RIGHT] = index

    # Update heights, old root first since it is now the lower one
    _update_height(tree, index)
    _update_height(tree, left_index)

    return left_index # new root

@njit(inline="always")
def left_rotation( # SLR: Single Left Rotation
    tree:  np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Perform a single left rotation (SLR) at `index`.

    This rotation is applied when a node becomes right-heavy.
    The right child of the target node becomes the new root of the subtree,
    and the target node becomes the left child of that node.

    The function:
    - Rewires the subtree links in place
    - Recomputes heights bottom-up for the two moved nodes

    :param tree: Arena holding the node rows
    :type tree: np.ndarray
    :param index: Index of the subtree root to rotate
    :type index: np.int64
    :return: Index of the new root after rotation
    :rtype: np.int64
    """

    right_index = tree[index, RIGHT]

    # Rotate
    tree[index, RIGHT]      = tree[right_index, LEFT]
    tree[right_index, LEFT] = index

    # height(index) = max(height(index->left), height(index->right)) + 1
    _update_height(tree, index)
    _update_height(tree, right_index)

    return right_index # new root

@njit(inline="always", boundscheck=False)
def insert(
    tree:          np.ndarray,
    root:          np.int64,
    free:          np.int64,   # start from 1
    free_list:     np.ndarray,
    free_list_top: np.int64,
    path:          np.ndarray, # use in rebalancing
    key:           np.int64,
    balanced:      bool

) -> Tuple[np.int64, np.int64, np.int64, bool]:

    """
    Insert a new key into the arena tree, rebalancing when `balanced` is set.

    Parameters
    ----------
    tree : np.ndarray
        The array holding all node rows.
    root : np.int64
        Index of the current root node (0 if tree is empty).
    free : np.int64
        Next never-used row of `tree`, taken when free_list is empty.
    free_list : np.ndarray
        Stack of previously released rows for reuse.
    free_list_top : np.int64
        Top index of the free_list stack (0 if empty).
    path : np.ndarray
        Preallocated array storing the descent path for bottom-up rebalancing.
    key : np.int64
        The key to insert.
    balanced : bool
        Apply AVL rotations on the way back up.

    Returns
    -------
    Tuple[np.int64, np.int64, np.int64, bool]
        Updated (root, free, free_list_top, inserted). `inserted` is False
        when the key was already present.
    """

    # First node
    if root == 0:
        root, free, free_list_top = _allocate(tree, free, free_list, free_list_top, key)
        return root, free, free_list_top, True

    # Descend to the absent slot
    current_index = root
    path_index    = 0
    while True:
        path[path_index] = current_index
        path_index += 1

        current_key = tree[current_index, KEY]

        if key == current_key:
            return root, free, free_list_top, False

        side       = LEFT if key < current_key else RIGHT
        next_index = tree[current_index, side]

        if next_index == 0:
            new_index, free, free_list_top = _allocate(tree, free, free_list, free_list_top, key)
            tree[current_index, side] = new_index
            break

        current_index = next_index

    # Rebalancing, from the new leaf's parent up to the root
    for depth in range(path_index - 1, -1, -1):

        node_index = path[depth]
        _update_height(tree, node_index)

        if not balanced:
            continue

        bf           = _balance_factor(tree, node_index)
        new_sub_root = node_index

        if bf > 1: # L
            left_index = tree[node_index, LEFT]

            if key < tree[left_index, KEY]: # LL
                new_sub_root = right_rotation(tree, node_index)

            else: # LR
                tree[node_index, LEFT] = left_rotation(tree, left_index)
                new_sub_root           = right_rotation(tree, node_index)

        elif bf < -1: # R
            right_index = tree[node_index, RIGHT]

            if key > tree[right_index, KEY]: # RR
                new_sub_root = left_rotation(tree, node_index)

            else: # RL
                tree[node_index, RIGHT] = right_rotation(tree, right_index)
                new_sub_root            = left_rotation(tree, node_index)

        if new_sub_root != node_index:
            root = _relink(tree, path, depth, root, node_index, new_sub_root)

    return root, free, free_list_top, True

@njit(inline="always", boundscheck=False)
def remove(
    tree:           np.ndarray,
    root:           np.int64,
    free_list:      np.ndarray,
    free_list_top:  np.int64,
    path:           np.ndarray,
    key:            np.int64,
    balanced:       bool

) -> Tuple[bool, np.int64, np.int64]:

    """
    Iterative deletion with row recycling.

    The process involves:
    1. Path Discovery: Traverses to the target node while recording the traversal
    history in 'path' to facilitate bottom-up rebalancing.
    2. Logical Deletion: Handles leaf, single-child, and two-child cases
    (copying the in-order successor's key for the two-child case, then
    splicing out the successor instead).
    3. Row Recycling: Pushes the spliced-out row onto 'free_list'.
    4. Retracing: Refreshes heights from the splice point up to the root and,
    when `balanced` is set, performs the rotations (LL, LR, RR, RL) chosen
    from the children's own balance factors at every ancestor.

    Args:
        tree (np.ndarray): 2D array [N, 4] storing the node rows.
        root (np.int64): Index of the current tree root.
        free_list (np.ndarray): Stack of available rows for recycling.
        free_list_top (np.int64): Current pointer to the top of the free_list.
        path (np.ndarray): Scratchpad array to store the ancestor indices.
        key (np.int64): The key to be removed.
        balanced (bool): Apply AVL rotations on the way back up.

    Returns:
        Tuple[bool, np.int64, np.int64]:
            - removed (False when the key was absent and nothing changed).
            - new_root_index.
            - updated_free_list_top.
    """

    # Search
    path_index    = 0
    current_index = root

    while current_index != 0:
        path[path_index] = current_index
        path_index += 1

        current_key = tree[current_index, KEY]

        if key == current_key:
            break
        elif key < current_key:
            current_index = tree[current_index, LEFT]
        else:
            current_index = tree[current_index, RIGHT]

    if current_index == 0:
        return False, root, free_list_top

    target_index = current_index

    if tree[target_index, LEFT] != 0 and tree[target_index, RIGHT] != 0:
        successor_index, path_index = get_successor(tree, target_index, path, path_index)
        tree[target_index, KEY]     = tree[successor_index, KEY]
        actual_remove_index         = successor_index
    else:
        actual_remove_index = target_index

    # Only-right or no children hand the right link up, only-left hands the left link up
    replacement = tree[actual_remove_index, RIGHT]
    if tree[actual_remove_index, LEFT] != 0:
        replacement = tree[actual_remove_index, LEFT]

    root = _relink(tree, path, path_index - 1, root, actual_remove_index, replacement)

    free_list[free_list_top] = actual_remove_index
    free_list_top += 1

    # Rebalancing
    for depth in range(path_index - 2, -1, -1):

        node_index = path[depth]
        _update_height(tree, node_index)

        if not balanced:
            continue

        bf           = _balance_factor(tree, node_index)
        new_sub_root = node_index

        if bf > 1: # L
            left_index = tree[node_index, LEFT]

            if _balance_factor(tree, left_index) >= 0: # LL
                new_sub_root = right_rotation(tree, node_index)
            else: # LR
                tree[node_index, LEFT] = left_rotation(tree, left_index)
                new_sub_root           = right_rotation(tree, node_index)

        elif bf < -1: # R
            right_index = tree[node_index, RIGHT]

            if _balance_factor(tree, right_index) <= 0: # RR
                new_sub_root = left_rotation(tree, node_index)
            else: # RL
                tree[node_index, RIGHT] = right_rotation(tree, right_index)
                new_sub_root            = left_rotation(tree, node_index)

        if new_sub_root != node_index:
            root = _relink(tree, path, depth, root, node_index, new_sub_root)

    return True, root, free_list_top

@njit(inline="always")
def _search_single(
    tree: np.ndarray,
    root: np.int64,
    key:  np.int64

) -> np.int64:

    """
    Performs an iterative search for a single key.

    Returns:
        np.int64: The index of the node containing the key if found;
                otherwise, returns 0.
    """

    current_index = root
    while current_index != 0:
        current_key = tree[current_index, KEY]

        if key == current_key:
            return current_index

        elif key < current_key:
            current_index = tree[current_index, LEFT]

        else:
            current_index = tree[current_index, RIGHT]

    return 0

@njit(inline="always")
def _extreme(
    tree: np.ndarray,
    root: np.int64,
    side: np.int64

) -> np.int64:

    """
    Follow `side` links from the root until the last node. Root must not be 0.
    """

    current = root
    while tree[current, side] != 0:
        current = tree[current, side]

    return current



# --------- Utils ---------
@njit
def warmup(tree_size: int = 16):
    """
    Minimally triggers JIT compilation for the core operations of both policies.
    """

    warmup_data = np.array([30, 20, 10, 40, 50, 25, 35, 45], dtype=np.int64)

    for balanced in (False, True):
        tree = ArrayTree(tree_size, balanced)
        fill_tree(tree, warmup_data)

        _ = tree.contains(20)
        _ = tree.find_min()
        _ = tree.find_max()
        _ = tree.traverse_in_order()

        tree.delete(30)
        remove_tree(tree, warmup_data)

    return True

@njit
def build_tree(
    keys:     np.ndarray,
    balanced: bool

) -> 'ArrayTree':

    """
    Builds and populates a tree from a NumPy array at machine speed.

    Args:
        keys (np.ndarray): 1D array of int64 keys to insert.
        balanced (bool): True for the AVL policy, False for the unbalanced one.

    Returns:
        ArrayTree: A tree containing every distinct key from `keys`.
    """

    tree = ArrayTree(keys.size, balanced)
    fill_tree(tree, keys)

    return tree

@njit
def fill_tree(
    tree: 'ArrayTree',
    keys: np.ndarray

) -> int:

    """
    Populates an existing tree with multiple keys in a JIT loop, in array order.

    Args:
        tree (ArrayTree): The tree to be populated.
        keys (np.ndarray): 1D array of int64 keys to be inserted.

    Returns:
        int: How many keys were new to the tree.
    """

    inserted = 0
    for i in range(keys.size):
        if tree.insert(keys[i]):
            inserted += 1

    return inserted

@njit
def remove_tree(
    tree: 'ArrayTree',
    keys: np.ndarray

) -> int:
    """
    Perform batch removal of multiple keys from the tree, in array order.

    Keys that are not (or no longer) present are silently skipped, so a key
    sequence with duplicates can be removed with the same array it was
    inserted from.

    Args:
        tree (ArrayTree): The tree to remove from.
        keys (np.ndarray): A 1D int64 array containing the keys to be removed.

    Returns:
        int: How many keys were actually removed.
    """

    removed = 0
    for i in range(keys.size):
        if tree.delete(keys[i]):
            removed += 1

    return removed

@njit
def inorder_traversal( # LVR
    tree:         np.ndarray,
    root:         np.int64,
    current_size: np.int64

) -> np.ndarray:
    """
    Extracts all keys in ascending order.
    The explicit stack is sized from the root's cached height, so degenerate
    (list-shaped) trees are handled without recursion.
    """

    traverse = np.zeros(current_size, dtype=np.int64)
    stack    = np.zeros(tree[root, HEIGHT] + 1, dtype=np.int64)

    current_index = root
    stack_idx     = 0
    traverse_idx  = 0

    while traverse_idx < current_size:

        while current_index != 0:
            stack[stack_idx] = current_index
            stack_idx += 1

            current_index = tree[current_index, LEFT]

        if stack_idx > 0:
            stack_idx -= 1
            current_index = stack[stack_idx]

            traverse[traverse_idx] = tree[current_index, KEY]
            traverse_idx += 1

            current_index = tree[current_index, RIGHT]

        else:
            break

    return traverse


# --------- Tree API ---------
spec = [
    ("balanced"      , boolean),
    ("count"         , int64),
    ("tree"          , int64[:, :]),
    ("root"          , int64),
    ("_free"         , int64),
    ("_free_list"    , int64[:]),
    ("_free_list_top", int64),
    ("_path"         , int64[:]),

]

@jitclass(spec)
class ArrayTree:
    """
    Binary search tree over int64 keys stored in a NumPy arena, as a Numba jitclass.

    One class serves both kinds of tree: the balancing policy is fixed at
    construction. With `balanced=False` it is a plain unbalanced BST; with
    `balanced=True` every insert and delete rebalances the mutation path with
    AVL rotations. Heights are cached per row for both policies.

    Attributes:
        balanced (bool): AVL policy when True, unbalanced when False.
        count (int64): Current number of keys in the tree.
        tree (int64[:, :]): Underlying 2D array [rows, 4] storing node rows.
        root (int64): Index of the current root node (0 if empty).
    """

    def __init__(
        self,
        capacity: int,
        balanced: bool

    ) -> None:

        if capacity < 0:
            raise ValueError("The capacity of a tree must not be negative")

        rows = capacity + 1

        self.balanced       = balanced
        self.count          = int64(0)
        self.tree           = np.zeros((rows, FIELDS), dtype=np.int64)
        self.root           = int64(0)
        self._free          = int64(1)
        self._free_list     = np.zeros(rows, dtype=np.int64)
        self._free_list_top = int64(0)
        self._path          = np.zeros(rows, dtype=np.int64)

    def _grow(self) -> None:
        """Double the arena. The path is resized with it since depth is bounded by the row count."""

        rows  = self.tree.shape[0]
        grown = np.zeros((rows * 2, FIELDS), dtype=np.int64)
        grown[:rows, :] = self.tree

        free_list = np.zeros(rows * 2, dtype=np.int64)
        free_list[:rows] = self._free_list

        self.tree       = grown
        self._free_list = free_list
        self._path      = np.zeros(rows * 2, dtype=np.int64)

    @property
    def height(self) -> int:
        return self.tree[self.root, HEIGHT]

    def get_node(
        self,
        index: int

    ) -> Tuple[int, int, int, int]:

        """
        Return all fields of a specific node row.

        Args:
            index (int): The index of the node in the tree array.

        Returns:
            Tuple[int, int, int, int]: (key, left_index, right_index, height).
        """

        if index == 0:
            return 0, 0, 0, 0

        return get_node(self.tree, index)

    def balance_factor(
        self,
        index: int

    ) -> int:

        """
        height(left) - height(right) of the node at `index`; 0 for index 0.
        """

        return _balance_factor(self.tree, index)

    def find_min(self) -> int:
        """
        Return the smallest key.

        Raises:
            EmptyTreeError: if the tree holds no keys.
        """

        if self.root == 0:
            raise EmptyTreeError("find_min() on an empty tree")

        return self.tree[_extreme(self.tree, self.root, LEFT), KEY]

    def find_max(self) -> int:
        """
        Return the largest key.

        Raises:
            EmptyTreeError: if the tree holds no keys.
        """

        if self.root == 0:
            raise EmptyTreeError("find_max() on an empty tree")

        return self.tree[_extreme(self.tree, self.root, RIGHT), KEY]

    def insert(
        self,
        key: int

    ) -> bool:
        """Inserts a unique key, rebalancing under the AVL policy. Returns False for a duplicate."""

        if self._free_list_top == 0 and self._free >= self.tree.shape[0]:
            self._grow()

        self.root, self._free, self._free_list_top, inserted = insert(
            self.tree,
            self.root,
            self._free,
            self._free_list,
            self._free_list_top,
            self._path,
            np.int64(key),
            self.balanced
        )

        if inserted:
            self.count += 1

        return inserted

    def delete(
        self,
        key: int

    ) -> bool:
        """Deletes a key, rebalancing under the AVL policy. Returns False if the key was absent."""

        if self.count == 0:
            return False

        removed, self.root, self._free_list_top = remove(
            self.tree,
            self.root,
            self._free_list,
            self._free_list_top,
            self._path,
            np.int64(key),
            self.balanced
        )

        if removed:
            self.count -= 1

        return removed

    def search(
        self,
        key: int

    ) -> int:
        """Locates a key using iterative BST search. Returns the node index or 0 if not found."""

        return _search_single(
            self.tree,
            self.root,
            np.int64(key)
        )

    def contains(self, key: int) -> bool:
        return self.search(key) != 0

    def traverse_in_order(self) -> np.ndarray:
        """
        Return a new ascending array of every key (in-order traversal).
        Each call walks the tree again; nothing is shared between calls.
        """
        return inorder_traversal(self.tree, self.root, self.count)

    def __len__(self) -> int:
        return self.count

    def __str__(self) -> str:

        kind = "BalancedTree" if self.balanced else "OrderedTree"

        return kind + "(size=" + str(self.count) + ", root=" + str(self.root) + ", height=" + str(self.tree[self.root, HEIGHT]) + ")"



# --------- Constructors ---------
def OrderedTree(capacity: int = DEFAULT_CAPACITY) -> ArrayTree:
    """An empty unbalanced binary search tree. `capacity` is only the initial arena size."""
    return ArrayTree(capacity, False)

def BalancedTree(capacity: int = DEFAULT_CAPACITY) -> ArrayTree:
    """An empty AVL tree. `capacity` is only the initial arena size."""
    return ArrayTree(capacity, True)
