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

__all__ = [
    "ArrayTree",
    "BalancedTree",
    "EmptyTreeError",
    "OrderedTree",
    "build_tree",
    "fill_tree",
    "remove_tree",
    "warmup",
]
