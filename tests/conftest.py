import pytest

from regtree import RegTree, TreeParam


def fill_hess(tree, nid, leaf_hess):
    """Set leaf covers from ``leaf_hess`` and internal covers as child sums."""
    node = tree[nid]
    if node.is_leaf:
        tree.stat(nid).sum_hess = float(leaf_hess[nid])
    else:
        tree.stat(nid).sum_hess = (fill_hess(tree, node.left_child, leaf_hess)
                                   + fill_hess(tree, node.right_child, leaf_hess))
    return tree.stat(nid).sum_hess


@pytest.fixture
def scenario_tree():
    """Root splits f0 < 0.5 (default left); left leaf 1.0; right splits
    f1 < 2.0 (default right) into leaves 2.0 / 3.0."""
    tree = RegTree(TreeParam(num_feature=2))
    tree.add_children(0)
    tree[0].set_split(0, 0.5, default_left=True)
    tree[1].set_leaf(1.0)
    tree.add_children(2)
    tree[2].set_split(1, 2.0, default_left=False)
    tree[3].set_leaf(2.0)
    tree[4].set_leaf(3.0)
    fill_hess(tree, 0, {1: 5.0, 3: 2.0, 4: 3.0})
    return tree


@pytest.fixture
def deep_tree():
    """Three features, depth 3, feature 0 tested twice on one path.

    0: f0 < 0.5 (default right)
      1: f1 < 1.0 (default left)
        3: f0 < 0.2 (default right)
          7: leaf 1.0
          8: leaf 2.0
        4: leaf 3.0
      2: f2 < 0.0 (default left)
        5: leaf -1.0
        6: leaf 4.0
    """
    tree = RegTree(TreeParam(num_feature=3))
    tree.add_children(0)
    tree.add_children(1)
    tree.add_children(2)
    tree.add_children(3)
    tree[0].set_split(0, 0.5, default_left=False)
    tree[1].set_split(1, 1.0, default_left=True)
    tree[2].set_split(2, 0.0, default_left=True)
    tree[3].set_split(0, 0.2, default_left=False)
    tree[4].set_leaf(3.0)
    tree[5].set_leaf(-1.0)
    tree[6].set_leaf(4.0)
    tree[7].set_leaf(1.0)
    tree[8].set_leaf(2.0)
    fill_hess(tree, 0, {4: 3.0, 5: 2.0, 6: 4.0, 7: 1.0, 8: 2.0})
    return tree
