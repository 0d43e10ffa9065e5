import numpy as np
import pytest

from regtree import Node, NodeStat, RegTree, TreeParam
from regtree._utils import INT32_MAX, DELETED_NODE_MARKER


def test_new_tree_is_single_root_leaf():
    tree = RegTree()
    assert tree.param.num_nodes == 1
    assert len(tree) == 1
    assert tree[0].is_leaf
    assert tree[0].is_root
    assert tree[0].parent is None
    assert tree[0].leaf_value == 0.0
    assert tree.num_extra_nodes == 0


def test_add_children_wires_parent_and_side():
    tree = RegTree()
    tree.add_children(0)

    assert not tree[0].is_leaf
    assert (tree[0].left_child, tree[0].right_child) == (1, 2)
    assert tree[1].parent == 0 and tree[1].is_left_child
    assert tree[2].parent == 0 and not tree[2].is_left_child
    assert tree[1].is_leaf and tree[2].is_leaf
    assert tree.num_extra_nodes == 2


def test_add_children_requires_leaf():
    tree = RegTree()
    tree.add_children(0)
    with pytest.raises(ValueError):
        tree.add_children(0)


def test_add_right_child_to_leaf():
    tree = RegTree()
    tree.add_right_child(0)

    assert tree.param.num_nodes == 2
    assert tree[0].is_leaf
    assert tree[0].right_child == 1
    assert tree[1].parent == 0 and not tree[1].is_left_child


def test_add_right_child_rejects_internal_node(deep_tree):
    num_nodes = deep_tree.param.num_nodes
    with pytest.raises(ValueError):
        deep_tree.add_right_child(0)
    assert deep_tree[0].right_child == 2
    assert deep_tree.param.num_nodes == num_nodes

    deep_tree.change_to_leaf(3, 1.5)
    with pytest.raises(ValueError):
        deep_tree.add_right_child(7)


def test_add_children_then_change_to_leaf_round_trip():
    tree = RegTree()
    before = tree.num_extra_nodes
    tree.add_children(0)
    tree.change_to_leaf(0, 1.5)

    assert tree[0].is_leaf
    assert tree[0].leaf_value == 1.5
    assert sorted(tree.deleted_nodes) == [1, 2]
    assert tree.param.num_deleted == 2
    assert tree.num_extra_nodes == before
    assert tree[1].is_deleted and tree[2].is_deleted


def test_free_list_reuse():
    tree = RegTree()
    tree.add_children(0)
    tree.delete_node(2)
    assert tree[2].is_deleted
    assert tree.param.num_deleted == 1

    nid = tree.alloc_node()
    assert nid == 2
    assert tree.param.num_deleted == 0
    assert tree.deleted_nodes == []
    assert not tree[2].is_deleted
    assert tree[2].is_leaf
    assert tree.param.num_nodes == 3


def test_alloc_grows_when_free_list_empty():
    tree = RegTree(TreeParam(size_leaf_vector=2))
    assert tree.leaf_vector.shape == (2,)
    nid = tree.alloc_node()
    assert nid == 1
    assert len(tree.nodes) == len(tree.stats) == 2
    assert tree.leaf_vector.shape == (4,)
    assert tree.leafvec(1).shape == (2,)


def test_leafvec_disabled_without_leaf_vector():
    assert RegTree().leafvec(0) is None


def test_delete_root_raises():
    tree = RegTree()
    with pytest.raises(ValueError):
        tree.delete_node(0)


def test_delete_keeps_parent_link():
    tree = RegTree()
    tree.add_children(0)
    tree.change_to_leaf(0, 0.0)
    assert tree[1].parent == 0
    assert tree[1].is_left_child


def test_change_to_leaf_requires_leaf_children(deep_tree):
    with pytest.raises(ValueError):
        deep_tree.change_to_leaf(0, 1.0)


def test_collapse_to_leaf(deep_tree):
    deep_tree.collapse_to_leaf(0, 5.0)

    assert deep_tree[0].is_leaf
    assert deep_tree[0].leaf_value == 5.0
    assert deep_tree.param.num_deleted == 8
    assert deep_tree.num_extra_nodes == 0
    assert sorted(deep_tree.deleted_nodes) == list(range(1, 9))
    # intermediate nodes were collapsed with value 0
    assert deep_tree[3].leaf_value == 0.0
    assert deep_tree[1].leaf_value == 0.0
    assert deep_tree[3].parent == 1


def test_collapse_leaf_is_noop():
    tree = RegTree()
    tree.collapse_to_leaf(0, 3.0)
    assert tree[0].leaf_value == 0.0
    assert tree.param.num_deleted == 0


def test_depth_and_max_depth(deep_tree):
    assert deep_tree.get_depth(0) == 0
    assert deep_tree.get_depth(7) == 3
    assert deep_tree.get_depth(8) == 3
    assert deep_tree.get_depth(8, pass_rchild=True) == 2
    assert deep_tree.get_depth(6, pass_rchild=True) == 0
    assert deep_tree.max_depth() == 3
    assert deep_tree.max_depth(2) == 1
    assert deep_tree.max_depth(4) == 0


def test_multiple_roots():
    tree = RegTree(TreeParam(num_roots=2))
    assert tree.param.num_nodes == 2
    assert tree[1].is_root
    with pytest.raises(ValueError):
        tree.delete_node(1)
    tree.add_children(1)
    tree[1].set_split(0, 0.0)
    assert tree.max_depth() == 1
    assert tree.max_depth(0) == 0
    assert tree.num_extra_nodes == 2


def test_alloc_overflow_raises_memory_error():
    tree = RegTree()
    tree.param.num_nodes = INT32_MAX - 1
    with pytest.raises(MemoryError):
        tree.alloc_node()


def test_iter_live_nodes_skips_deleted(deep_tree):
    deep_tree.change_to_leaf(3, 1.0)
    live = list(deep_tree.iter_live_nodes())
    assert 7 not in live and 8 not in live
    assert len(live) == 7


def test_node_split_packing():
    node = Node()
    node.set_split(5, 0.25, default_left=True)
    assert node.split_index == 5
    assert node.default_left
    assert node.split_cond == 0.25
    assert not node.is_deleted

    node.set_split(7, 1.0)
    assert node.split_index == 7
    assert not node.default_left

    with pytest.raises(ValueError):
        node.set_split(2 ** 31, 0.0)


def test_node_payload_is_float32():
    node = Node()
    node.set_leaf(0.1)
    assert node.leaf_value == float(np.float32(0.1))


def test_node_mark_delete_uses_split_word():
    node = Node()
    node.set_split(3, 1.0, default_left=True)
    node.mark_delete()
    assert node.is_deleted
    assert node._sindex == DELETED_NODE_MARKER


def test_node_default_child():
    node = Node()
    node.left_child, node.right_child = 1, 2
    node.set_split(0, 0.0, default_left=True)
    assert node.default_child == 1
    node.set_split(0, 0.0, default_left=False)
    assert node.default_child == 2


def test_tree_param_validation():
    with pytest.raises(ValueError):
        TreeParam(num_roots=0)
    with pytest.raises(ValueError):
        TreeParam(size_leaf_vector=-1)
    with pytest.raises(ValueError):
        TreeParam(num_feature=-3)

    param = TreeParam()
    param.set_param('num_feature', '5')
    assert param.num_feature == 5
    with pytest.raises(ValueError):
        param.set_param('num_nodes', 10)


def test_tree_param_equality():
    assert TreeParam(num_feature=3) == TreeParam(num_feature=3)
    assert TreeParam(num_feature=3) != TreeParam(num_feature=4)


def test_node_stat_defaults():
    stat = NodeStat()
    assert stat.sum_hess == 0.0
    assert stat.leaf_child_cnt == 0
    assert stat == NodeStat()


def test_node_stat_floats_are_float32():
    stat = NodeStat(loss_chg=0.1, sum_hess=1.1, base_weight=-0.3)
    assert stat.loss_chg == float(np.float32(0.1))
    assert stat.sum_hess == float(np.float32(1.1))
    assert stat.base_weight == float(np.float32(-0.3))
    stat.sum_hess = 2.2
    assert stat.sum_hess == float(np.float32(2.2))


def test_reprs():
    tree = RegTree(TreeParam(num_feature=2))
    tree.add_children(0)
    tree[0].set_split(1, 0.5, default_left=True)
    tree[1].set_leaf(1.25)
    assert repr(tree[0]) == (
        "Node(left=1, right=2, feature=1, threshold=0.5000, "
        "default_left=True, parent=None)")
    assert repr(tree[1]) == "Node(leaf=1.2500, parent=0)"
    assert repr(NodeStat(sum_hess=2.0)) == (
        "NodeStat(gain=0.0000, cover=2.0000, base_weight=0.0000)")
    assert repr(tree.param) == (
        "TreeParam(num_roots=1, num_nodes=3, num_deleted=0, max_depth=0, "
        "num_feature=2, size_leaf_vector=0)")


def test_init_model_resets_arena(deep_tree):
    deep_tree.init_model()
    assert deep_tree.param.num_nodes == 1
    assert deep_tree.deleted_nodes == []
    assert deep_tree[0].is_leaf
