# regtree/_tree.py
import logging

import numpy as np
from scipy.sparse import csr_matrix

from ._fvec import FVec
from ._shap import new_path, tree_shap
from ._utils import (
    TREE_LEAF, NO_PARENT, DELETED_NODE_MARKER, INT32_MAX, DTYPE, DOUBLE,
    _HIGH_BIT, _LOW_MASK, _WORD_MASK, as_float32, check_input, iter_rows,
)

logger = logging.getLogger(__name__)

# Binary layout of one node and one node statistic
NODE_DTYPE = np.dtype([
    ('parent', '<u4'),
    ('left_child', '<i4'),
    ('right_child', '<i4'),
    ('sindex', '<u4'),
    ('info', '<f4'),
])

STAT_DTYPE = np.dtype([
    ('loss_chg', '<f4'),
    ('sum_hess', '<f4'),
    ('base_weight', '<f4'),
    ('leaf_child_cnt', '<i4'),
])


class Node:
    """Node structure for tree.

    The parent word keeps the "is left child" flag in its high bit and the
    split word keeps the default direction in its high bit. The payload holds
    the leaf value for leaves and the split condition for internal nodes.
    """

    __slots__ = ('_parent', 'left_child', 'right_child', '_sindex', '_info')

    def __init__(self):
        self._parent = NO_PARENT
        self.left_child = TREE_LEAF
        self.right_child = TREE_LEAF
        self._sindex = 0
        self._info = 0.0

    @property
    def parent(self):
        """Index of the parent node, None for a root."""
        if self._parent == NO_PARENT:
            return None
        return self._parent & _LOW_MASK

    @property
    def is_left_child(self):
        return self._parent != NO_PARENT and (self._parent & _HIGH_BIT) != 0

    @property
    def is_root(self):
        return self._parent == NO_PARENT

    @property
    def split_index(self):
        """Feature index of the split condition."""
        return self._sindex & _LOW_MASK

    @property
    def default_left(self):
        """When the feature is unknown, whether to go to the left child."""
        return (self._sindex >> 31) != 0

    @property
    def default_child(self):
        return self.left_child if self.default_left else self.right_child

    @property
    def is_leaf(self):
        return self.left_child == TREE_LEAF

    @property
    def is_deleted(self):
        return self._sindex == DELETED_NODE_MARKER

    @property
    def leaf_value(self):
        return self._info

    @property
    def split_cond(self):
        return self._info

    def set_left_child(self, nid):
        self.left_child = nid

    def set_right_child(self, nid):
        self.right_child = nid

    def set_split(self, split_index, split_cond, default_left=False):
        """Set the split condition of the node.

        Parameters
        ----------
        split_index : int
            Feature index to split on, must fit in 31 bits.
        split_cond : float
            Threshold; values strictly below it go left.
        default_left : bool
            Direction taken when the feature is missing.
        """
        if not 0 <= split_index <= _LOW_MASK:
            raise ValueError("split_index must be in [0, 2**31), got %r" % split_index)
        if default_left:
            split_index |= _HIGH_BIT
        self._sindex = split_index
        self._info = as_float32(split_cond)

    def set_leaf(self, value, right=TREE_LEAF):
        """Turn the node into a leaf; ``right`` may carry extra information."""
        self._info = as_float32(value)
        self.left_child = TREE_LEAF
        self.right_child = right

    def mark_delete(self):
        self._sindex = DELETED_NODE_MARKER

    def set_parent(self, pidx, is_left_child=True):
        if pidx == NO_PARENT:
            self._parent = NO_PARENT
            return
        if is_left_child:
            pidx |= _HIGH_BIT
        self._parent = pidx

    def __eq__(self, other):
        if not isinstance(other, Node):
            return NotImplemented
        return (self._parent == other._parent
                and self.left_child == other.left_child
                and self.right_child == other.right_child
                and self._sindex == other._sindex
                and self._info == other._info)

    def __repr__(self):
        if self.is_deleted:
            return f"Node(deleted, parent={self.parent})"
        if self.is_leaf:
            return f"Node(leaf={self._info:.4f}, parent={self.parent})"
        return (f"Node(left={self.left_child}, right={self.right_child}, "
                f"feature={self.split_index}, threshold={self._info:.4f}, "
                f"default_left={self.default_left}, parent={self.parent})")


class NodeStat:
    """Node statistics used in a regression tree."""

    __slots__ = ('_loss_chg', '_sum_hess', '_base_weight', 'leaf_child_cnt')

    def __init__(self, loss_chg=0.0, sum_hess=0.0, base_weight=0.0,
                 leaf_child_cnt=0):
        self.loss_chg = loss_chg
        self.sum_hess = sum_hess
        self.base_weight = base_weight
        # number of children that are leaves, known up to now
        self.leaf_child_cnt = leaf_child_cnt

    # float fields are kept at the float32 precision they are stored with

    @property
    def loss_chg(self):
        """Loss change caused by the split."""
        return self._loss_chg

    @loss_chg.setter
    def loss_chg(self, value):
        self._loss_chg = as_float32(value)

    @property
    def sum_hess(self):
        """Sum of hessian values, the coverage of the node."""
        return self._sum_hess

    @sum_hess.setter
    def sum_hess(self, value):
        self._sum_hess = as_float32(value)

    @property
    def base_weight(self):
        return self._base_weight

    @base_weight.setter
    def base_weight(self, value):
        self._base_weight = as_float32(value)

    def __eq__(self, other):
        if not isinstance(other, NodeStat):
            return NotImplemented
        return (self.loss_chg == other.loss_chg
                and self.sum_hess == other.sum_hess
                and self.base_weight == other.base_weight
                and self.leaf_child_cnt == other.leaf_child_cnt)

    def __repr__(self):
        return (f"NodeStat(gain={self.loss_chg:.4f}, cover={self.sum_hess:.4f}, "
                f"base_weight={self.base_weight:.4f})")


class TreeParam:
    """Meta parameters of the tree.

    Only ``num_roots``, ``num_feature`` and ``size_leaf_vector`` can be set by
    the user; the other fields are maintained by the tree.
    """

    _USER_PARAMS = ('num_roots', 'num_feature', 'size_leaf_vector')

    def __init__(self, num_roots=1, num_feature=0, size_leaf_vector=0):
        self.num_roots = 1
        self.num_nodes = 1
        self.num_deleted = 0
        # maximum depth, a statistic of the tree
        self.max_depth = 0
        self.num_feature = 0
        self.size_leaf_vector = 0

        self.set_param('num_roots', num_roots)
        self.set_param('num_feature', num_feature)
        self.set_param('size_leaf_vector', size_leaf_vector)
        self.num_nodes = self.num_roots

    def set_param(self, name, value):
        """Set one user parameter, validating it."""
        if name not in self._USER_PARAMS:
            raise ValueError("Unknown tree parameter %r; expected one of %s"
                             % (name, ", ".join(self._USER_PARAMS)))
        value = int(value)
        if name == 'num_roots' and value < 1:
            raise ValueError("num_roots must be >= 1, got %d" % value)
        if name == 'num_feature' and value < 0:
            raise ValueError("num_feature must be >= 0, got %d" % value)
        if name == 'size_leaf_vector' and value < 0:
            raise ValueError("size_leaf_vector must be >= 0, got %d" % value)
        setattr(self, name, value)

    @property
    def num_extra_nodes(self):
        """Number of live nodes besides the roots."""
        return self.num_nodes - self.num_roots - self.num_deleted

    def __eq__(self, other):
        if not isinstance(other, TreeParam):
            return NotImplemented
        return (self.num_nodes == other.num_nodes
                and self.num_deleted == other.num_deleted
                and self.num_feature == other.num_feature
                and self.size_leaf_vector == other.size_leaf_vector)

    def __repr__(self):
        return (f"TreeParam(num_roots={self.num_roots}, num_nodes={self.num_nodes}, "
                f"num_deleted={self.num_deleted}, max_depth={self.max_depth}, "
                f"num_feature={self.num_feature}, "
                f"size_leaf_vector={self.size_leaf_vector})")


class TreeModel:
    """Array-based node arena of a binary tree with one or more roots.

    Nodes, node statistics and leaf vectors live in parallel stores indexed
    by node id. Deleted ids go to a free list and are handed out again by
    ``alloc_node``.
    """

    def __init__(self, param=None):
        self.param = param if param is not None else TreeParam()
        self.nodes = []
        self.stats = []
        self.leaf_vector = np.zeros(0, dtype=DTYPE)
        self.deleted_nodes = []
        self.init_model()

    def init_model(self):
        """Reset the arena to ``num_roots`` leaves with value 0."""
        param = self.param
        param.num_nodes = param.num_roots
        param.num_deleted = 0
        self.nodes = [Node() for _ in range(param.num_nodes)]
        self.stats = [NodeStat() for _ in range(param.num_nodes)]
        self.leaf_vector = np.zeros(param.num_nodes * param.size_leaf_vector,
                                    dtype=DTYPE)
        self.deleted_nodes = []
        self._structure_changed()

    def _structure_changed(self):
        """Hook called after every structural mutation."""

    def __getitem__(self, nid):
        return self.nodes[nid]

    def __len__(self):
        return self.param.num_nodes

    def stat(self, nid):
        return self.stats[nid]

    def leafvec(self, nid):
        """Leaf vector of a node as a view, None when leaf vectors are disabled."""
        size = self.param.size_leaf_vector
        if size == 0:
            return None
        return self.leaf_vector[nid * size:(nid + 1) * size]

    @property
    def num_extra_nodes(self):
        return self.param.num_extra_nodes

    def iter_live_nodes(self):
        """Yield the ids of the nodes that are not deleted."""
        for nid, node in enumerate(self.nodes):
            if not node.is_deleted:
                yield nid

    def alloc_node(self):
        """Allocate a new node, reusing a deleted slot when there is one."""
        param = self.param
        if param.num_deleted != 0:
            nid = self.deleted_nodes.pop()
            param.num_deleted -= 1
            self.nodes[nid] = Node()
            self.stats[nid] = NodeStat()
            leafvec = self.leafvec(nid)
            if leafvec is not None:
                leafvec[:] = 0.0
            self._structure_changed()
            return nid

        if param.num_nodes + 1 >= INT32_MAX:
            raise MemoryError("number of nodes in the tree exceed 2^31")
        nid = param.num_nodes
        param.num_nodes += 1
        self.nodes.append(Node())
        self.stats.append(NodeStat())
        if param.size_leaf_vector != 0:
            self.leaf_vector = np.concatenate(
                [self.leaf_vector, np.zeros(param.size_leaf_vector, dtype=DTYPE)])
        self._structure_changed()
        return nid

    def delete_node(self, nid):
        """Delete a node, keeping its parent field to allow trace back."""
        if nid < self.param.num_roots:
            raise ValueError("Cannot delete root node %d" % nid)
        node = self.nodes[nid]
        if node.is_deleted:
            raise ValueError("Node %d is already deleted" % nid)
        self.deleted_nodes.append(nid)
        node.mark_delete()
        self.param.num_deleted += 1
        self._structure_changed()

    def add_children(self, nid):
        """Add a left and a right child to the leaf ``nid``."""
        node = self.nodes[nid]
        if not node.is_leaf or node.is_deleted:
            raise ValueError("Node %d is not a live leaf" % nid)
        pleft = self.alloc_node()
        pright = self.alloc_node()
        node.left_child = pleft
        node.right_child = pright
        self.nodes[pleft].set_parent(nid, True)
        self.nodes[pright].set_parent(nid, False)
        self._structure_changed()

    def add_right_child(self, nid):
        """Only add a right child to the leaf ``nid``.

        The node stays a leaf; its right slot carries the new index.
        """
        node = self.nodes[nid]
        if not node.is_leaf or node.is_deleted:
            raise ValueError("Node %d is not a live leaf" % nid)
        pright = self.alloc_node()
        node.right_child = pright
        self.nodes[pright].set_parent(nid, False)
        self._structure_changed()

    def change_to_leaf(self, rid, value):
        """Change a node whose children are both leaves into a leaf.

        Both children are deleted.
        """
        node = self.nodes[rid]
        if node.is_leaf:
            raise ValueError("Node %d is already a leaf" % rid)
        if not (self.nodes[node.left_child].is_leaf
                and self.nodes[node.right_child].is_leaf):
            raise ValueError("Children of node %d must both be leaves" % rid)
        self.delete_node(node.left_child)
        self.delete_node(node.right_child)
        node.set_leaf(value)
        self._structure_changed()

    def collapse_to_leaf(self, rid, value):
        """Collapse the whole subtree at ``rid`` into a single leaf.

        Intermediate nodes are collapsed with value 0 on the way up; only
        ``rid`` receives ``value``.
        """
        node = self.nodes[rid]
        if node.is_leaf:
            return
        if not self.nodes[node.left_child].is_leaf:
            self.collapse_to_leaf(node.left_child, 0.0)
        if not self.nodes[node.right_child].is_leaf:
            self.collapse_to_leaf(node.right_child, 0.0)
        self.change_to_leaf(rid, value)
        logger.debug("Collapsed node %d to leaf, %d nodes deleted so far",
                     rid, self.param.num_deleted)

    def get_depth(self, nid, pass_rchild=False):
        """Depth of a node.

        Parameters
        ----------
        nid : int
            Node id.
        pass_rchild : bool
            Whether right-child edges are left out of the count.
        """
        depth = 0
        node = self.nodes[nid]
        while not node.is_root:
            if not pass_rchild or node.is_left_child:
                depth += 1
            node = self.nodes[node.parent]
        return depth

    def max_depth(self, nid=None):
        """Maximum depth below ``nid``, or over all roots when ``nid`` is None."""
        if nid is None:
            return max(self.max_depth(root) for root in range(self.param.num_roots))
        node = self.nodes[nid]
        if node.is_leaf:
            return 0
        return max(self.max_depth(node.left_child) + 1,
                   self.max_depth(node.right_child) + 1)

    # -------------------------------------------------------------------------
    # Structured array views
    # -------------------------------------------------------------------------

    def _get_node_ndarray(self):
        """Wraps nodes as a NumPy structured array in the binary layout."""
        arr = np.zeros(len(self.nodes), dtype=NODE_DTYPE)
        for i, node in enumerate(self.nodes):
            arr[i] = (node._parent & _WORD_MASK, node.left_child,
                      node.right_child, node._sindex, node._info)
        return arr

    def _get_stat_ndarray(self):
        """Wraps node statistics as a NumPy structured array."""
        arr = np.zeros(len(self.stats), dtype=STAT_DTYPE)
        for i, stat in enumerate(self.stats):
            arr[i] = (stat.loss_chg, stat.sum_hess, stat.base_weight,
                      stat.leaf_child_cnt)
        return arr

    def _set_ndarrays(self, node_ndarray, stat_ndarray, leaf_vector):
        """Rebuild the arena from structured arrays; ``param`` must be set."""
        param = self.param
        node_ndarray = self._check_ndarray(node_ndarray, NODE_DTYPE, 'node')
        stat_ndarray = self._check_ndarray(stat_ndarray, STAT_DTYPE, 'stat')

        self.nodes = []
        for rec in node_ndarray:
            node = Node()
            parent = int(rec['parent'])
            node._parent = NO_PARENT if parent == _WORD_MASK else parent
            node.left_child = int(rec['left_child'])
            node.right_child = int(rec['right_child'])
            node._sindex = int(rec['sindex'])
            node._info = float(rec['info'])
            self.nodes.append(node)

        self.stats = [
            NodeStat(float(rec['loss_chg']), float(rec['sum_hess']),
                     float(rec['base_weight']), int(rec['leaf_child_cnt']))
            for rec in stat_ndarray
        ]

        expected = param.num_nodes * param.size_leaf_vector
        if leaf_vector is None:
            leaf_vector = np.zeros(expected, dtype=DTYPE)
        leaf_vector = np.array(leaf_vector, dtype=DTYPE)
        if leaf_vector.shape != (expected,):
            raise ValueError(
                "Wrong shape for leaf vector: expected (%d,), got %s"
                % (expected, leaf_vector.shape))
        self.leaf_vector = leaf_vector

        # rediscover deleted nodes
        self.deleted_nodes = [
            nid for nid in range(param.num_roots, param.num_nodes)
            if self.nodes[nid].is_deleted
        ]
        if len(self.deleted_nodes) != param.num_deleted:
            raise ValueError(
                "Found %d deleted nodes but the header declares %d"
                % (len(self.deleted_nodes), param.num_deleted))
        self._structure_changed()

    def _check_ndarray(self, ndarray, dtype, what):
        """Check a node or stat array read from a stream or a pickle."""
        ndarray = np.asarray(ndarray)
        if ndarray.ndim != 1:
            raise ValueError(
                "Wrong dimensions for %s array: expected 1, got %d"
                % (what, ndarray.ndim))
        if ndarray.shape[0] != self.param.num_nodes:
            raise ValueError(
                "Wrong length for %s array: expected %d, got %d"
                % (what, self.param.num_nodes, ndarray.shape[0]))
        if ndarray.dtype != dtype:
            ndarray = ndarray.astype(dtype)
        return ndarray


class RegTree(TreeModel):
    """Regression tree: prediction and feature attribution over the arena."""

    def __init__(self, param=None):
        self._mean_values = np.zeros(0, dtype=DOUBLE)
        self._mean_values_stale = True
        super().__init__(param)

    def _structure_changed(self):
        self._mean_values_stale = True

    def __reduce__(self):
        """Reduce re-implementation, for pickling."""
        return (type(self), (), self.__getstate__())

    def __getstate__(self):
        """Getstate re-implementation, for pickling."""
        param = self.param
        return {
            "param": (param.num_roots, param.num_nodes, param.num_deleted,
                      param.max_depth, param.num_feature,
                      param.size_leaf_vector),
            "nodes": self._get_node_ndarray(),
            "stats": self._get_stat_ndarray(),
            "leaf_vector": self.leaf_vector.copy(),
        }

    def __setstate__(self, d):
        """Setstate re-implementation, for unpickling."""
        if 'nodes' not in d or 'param' not in d:
            raise ValueError('You have loaded a RegTree state which cannot be imported')
        self.param = param_from_header(d["param"])
        self._set_ndarrays(d["nodes"], d["stats"], d["leaf_vector"])

    # -------------------------------------------------------------------------
    # Prediction
    # -------------------------------------------------------------------------

    def get_next(self, pid, fvalue, is_unknown):
        """Next position of the tree given the current node ``pid``."""
        node = self.nodes[pid]
        if is_unknown:
            return node.default_child
        if fvalue < node.split_cond:
            return node.left_child
        return node.right_child

    def get_leaf_index(self, feat, root_id=0):
        """Index of the leaf reached by ``feat`` starting from ``root_id``."""
        pid = root_id
        node = self.nodes[pid]
        while not node.is_leaf:
            split_index = node.split_index
            pid = self.get_next(pid, feat.fvalue(split_index),
                                feat.is_missing(split_index))
            node = self.nodes[pid]
        return pid

    def predict(self, feat, root_id=0):
        """Leaf value reached by ``feat``."""
        return self.nodes[self.get_leaf_index(feat, root_id)].leaf_value

    def _new_fvec(self):
        return FVec(self.param.num_feature)

    def apply(self, X, root_id=0):
        """Finds the terminal region (=leaf node) for each sample in X."""
        X = check_input(X, self.param.num_feature)
        out = np.zeros(X.shape[0], dtype=np.intp)
        feat = self._new_fvec()
        for i, row in enumerate(iter_rows(X)):
            feat.fill(row)
            out[i] = self.get_leaf_index(feat, root_id)
            feat.drop(row)
        return out

    def predict_batch(self, X, root_id=0):
        """Predict the leaf value for each sample in X."""
        leaves = self.apply(X, root_id)
        out = np.zeros(leaves.shape[0], dtype=DOUBLE)
        for i, leaf in enumerate(leaves):
            out[i] = self.nodes[leaf].leaf_value
        return out

    def decision_path(self, X, root_id=0):
        """Finds the decision path (=node) for each sample in X."""
        X = check_input(X, self.param.num_feature)
        n_samples = X.shape[0]
        indptr = np.zeros(n_samples + 1, dtype=np.intp)
        indices = []
        feat = self._new_fvec()

        for i, row in enumerate(iter_rows(X)):
            feat.fill(row)
            pid = root_id
            indices.append(pid)
            while not self.nodes[pid].is_leaf:
                split_index = self.nodes[pid].split_index
                pid = self.get_next(pid, feat.fvalue(split_index),
                                    feat.is_missing(split_index))
                indices.append(pid)
            feat.drop(row)
            indptr[i + 1] = len(indices)

        indices = np.asarray(indices, dtype=np.intp)
        data = np.ones(shape=len(indices), dtype=np.intp)
        return csr_matrix((data, indices, indptr),
                          shape=(n_samples, self.param.num_nodes))

    # -------------------------------------------------------------------------
    # Node mean values
    # -------------------------------------------------------------------------

    @property
    def node_mean_values(self):
        """Hessian-weighted mean leaf value of every subtree (read-only)."""
        view = self._mean_values.view()
        view.flags.writeable = False
        return view

    def invalidate_mean_values(self):
        """Mark the cache stale after editing leaf values or stats in place."""
        self._mean_values_stale = True

    def fill_node_mean_values(self):
        """Calculate the mean value for each node, required for contributions."""
        num_nodes = self.param.num_nodes
        if self._mean_values.shape[0] == num_nodes and not self._mean_values_stale:
            return
        self._mean_values = np.zeros(num_nodes, dtype=DOUBLE)
        for root_id in range(self.param.num_roots):
            self._fill_node_mean_value(root_id)
        self._mean_values_stale = False
        logger.debug("Filled node mean values for %d nodes", num_nodes)

    def _fill_node_mean_value(self, nid):
        node = self.nodes[nid]
        if node.is_leaf:
            result = node.leaf_value
        else:
            sum_hess = self.stats[nid].sum_hess
            if sum_hess == 0:
                raise ValueError(
                    "Node %d has zero sum_hess; node statistics must be "
                    "filled before computing mean values" % nid)
            result = (self._fill_node_mean_value(node.left_child)
                      * self.stats[node.left_child].sum_hess)
            result += (self._fill_node_mean_value(node.right_child)
                       * self.stats[node.right_child].sum_hess)
            result /= sum_hess
        self._mean_values[nid] = result
        return result

    def _check_mean_values(self):
        if self._mean_values.shape[0] == 0:
            raise ValueError(
                "Node mean values are empty; call fill_node_mean_values() first")
        if (self._mean_values_stale
                or self._mean_values.shape[0] != self.param.num_nodes):
            raise ValueError(
                "Node mean values are stale after a change of the tree; "
                "call fill_node_mean_values() again")

    # -------------------------------------------------------------------------
    # Feature contributions
    # -------------------------------------------------------------------------

    def calculate_contributions_approx(self, feat, root_id, out_contribs):
        """Add the approximate feature contributions of ``feat`` to ``out_contribs``.

        Each split on the prediction path is credited with the change of the
        node mean value it causes. ``out_contribs[feat.size]`` receives the
        bias.
        """
        self._check_mean_values()
        mean_values = self._mean_values
        pid = root_id
        node_value = mean_values[pid]
        out_contribs[feat.size] += node_value
        if self.nodes[pid].is_leaf:
            return

        split_index = 0
        while not self.nodes[pid].is_leaf:
            split_index = self.nodes[pid].split_index
            pid = self.get_next(pid, feat.fvalue(split_index),
                                feat.is_missing(split_index))
            new_value = mean_values[pid]
            out_contribs[split_index] += new_value - node_value
            node_value = new_value

        leaf_value = self.nodes[pid].leaf_value
        out_contribs[split_index] += leaf_value - node_value

    def calculate_contributions(self, feat, root_id, out_contribs, condition=0,
                                condition_feature=0):
        """Add the SHAP values of ``feat`` to ``out_contribs``.

        Parameters
        ----------
        feat : FVec
            Dense feature vector of the explained instance.
        root_id : int
            Root to start from.
        out_contribs : ndarray of shape (feat.size + 1,)
            Output buffer; the last slot receives the bias.
        condition : {-1, 0, 1}
            Fix ``condition_feature`` off (-1), on (1), or not at all (0).
        condition_feature : int
            Feature fixed by ``condition``.
        """
        if condition not in (-1, 0, 1):
            raise ValueError("condition must be -1, 0 or 1, got %r" % condition)

        # the expected value of the tree's predictions
        if condition == 0:
            self._check_mean_values()
            out_contribs[feat.size] += self._mean_values[root_id]

        path = new_path(self.max_depth(root_id))
        tree_shap(self, feat, out_contribs, root_id, 0, path, 0,
                  1.0, 1.0, -1, condition, condition_feature, 1.0)

    def pred_contribs(self, X, approx=False, root_id=0):
        """Feature contributions for each sample in X.

        Returns an array of shape (n_samples, num_feature + 1) whose last
        column is the bias.
        """
        X = check_input(X, self.param.num_feature)
        self.fill_node_mean_values()
        feat = self._new_fvec()
        out = np.zeros((X.shape[0], feat.size + 1), dtype=DOUBLE)
        for i, row in enumerate(iter_rows(X)):
            feat.fill(row)
            if approx:
                self.calculate_contributions_approx(feat, root_id, out[i])
            else:
                self.calculate_contributions(feat, root_id, out[i])
            feat.drop(row)
        return out

    def pred_interactions(self, X, root_id=0):
        """SHAP interaction values for each sample in X.

        Returns an array of shape (n_samples, F + 1, F + 1) with
        ``F = num_feature``. Row ``i`` sums to the contribution of feature
        ``i``; the diagonal holds the main effects.
        """
        X = check_input(X, self.param.num_feature)
        self.fill_node_mean_values()
        feat = self._new_fvec()
        n_cols = feat.size + 1
        out = np.zeros((X.shape[0], n_cols, n_cols), dtype=DOUBLE)
        diag = np.zeros(n_cols, dtype=DOUBLE)
        contribs_on = np.zeros(n_cols, dtype=DOUBLE)
        contribs_off = np.zeros(n_cols, dtype=DOUBLE)

        for k, row in enumerate(iter_rows(X)):
            feat.fill(row)
            diag[:] = 0.0
            self.calculate_contributions(feat, root_id, diag)
            for i in range(n_cols):
                out[k, i, i] = diag[i]
            for i in range(feat.size):
                contribs_on[:] = 0.0
                contribs_off[:] = 0.0
                self.calculate_contributions(feat, root_id, contribs_off, -1, i)
                self.calculate_contributions(feat, root_id, contribs_on, 1, i)
                for j in range(n_cols):
                    if j == i:
                        continue
                    value = (contribs_on[j] - contribs_off[j]) / 2.0
                    out[k, i, j] = value
                    out[k, i, i] -= value
            feat.drop(row)
        return out


def param_from_header(header):
    """Build a TreeParam from ``(num_roots, num_nodes, num_deleted, max_depth,
    num_feature, size_leaf_vector)``."""
    num_roots, num_nodes, num_deleted, max_depth, num_feature, size_leaf_vector = \
        (int(v) for v in header)
    param = TreeParam(num_roots=num_roots, num_feature=num_feature,
                      size_leaf_vector=size_leaf_vector)
    if num_nodes == 0:
        raise ValueError("num_nodes must not be 0")
    if num_nodes < num_roots:
        raise ValueError("num_nodes (%d) is smaller than num_roots (%d)"
                         % (num_nodes, num_roots))
    if num_deleted < 0:
        raise ValueError("num_deleted must be >= 0, got %d" % num_deleted)
    param.num_nodes = num_nodes
    param.num_deleted = num_deleted
    param.max_depth = max_depth
    if param.num_extra_nodes < 0:
        raise ValueError("num_deleted (%d) exceeds the number of extra nodes"
                         % num_deleted)
    return param
