# regtree/_shap.py
"""Exact feature attribution for a single regression tree (TreeSHAP).

The recursion follows Lundberg, Erion & Lee, "Consistent Individualized
Feature Attribution for Tree Ensembles" (arXiv:1706.06060), Algorithm 2.

A decision path is stored as a run of ``PathElement`` inside one flat scratch
list owned by the top-level call. Each recursion level copies its parent's run
into the slots just after it, so siblings never see each other's updates. A
level is addressed by its ``offset`` in the scratch list; ``path[offset]`` is
the sentinel element for "no feature".
"""


class PathElement:
    """Data kept about one feature of the current decision path.

    ``pweight`` of the i'th element is the permutation weight of the paths
    with i-1 ones in them; it is not tied to the other attributes.
    """

    __slots__ = ('feature_index', 'zero_fraction', 'one_fraction', 'pweight')

    def __init__(self, feature_index=-1, zero_fraction=0.0, one_fraction=0.0,
                 pweight=0.0):
        self.feature_index = feature_index
        self.zero_fraction = zero_fraction
        self.one_fraction = one_fraction
        self.pweight = pweight

    def copy_from(self, other):
        """Copy data from another PathElement."""
        self.feature_index = other.feature_index
        self.zero_fraction = other.zero_fraction
        self.one_fraction = other.one_fraction
        self.pweight = other.pweight

    def __repr__(self):
        return (f"PathElement(feature={self.feature_index}, "
                f"zero={self.zero_fraction:.4f}, one={self.one_fraction:.4f}, "
                f"pweight={self.pweight:.4f})")


def new_path(max_depth):
    """Allocate the scratch path for a tree whose deepest leaf is at ``max_depth``."""
    maxd = max_depth + 2
    return [PathElement() for _ in range((maxd * (maxd + 1)) // 2)]


def extend_path(path, offset, unique_depth, zero_fraction, one_fraction,
                feature_index):
    """Extend the decision path with a fraction of one and zero extensions."""
    el = path[offset + unique_depth]
    el.feature_index = feature_index
    el.zero_fraction = zero_fraction
    el.one_fraction = one_fraction
    el.pweight = 1.0 if unique_depth == 0 else 0.0

    denom = float(unique_depth + 1)
    for i in range(unique_depth - 1, -1, -1):
        cur = path[offset + i]
        path[offset + i + 1].pweight += one_fraction * cur.pweight * (i + 1) / denom
        cur.pweight = zero_fraction * cur.pweight * (unique_depth - i) / denom


def unwind_path(path, offset, unique_depth, path_index):
    """Undo a previous extension of the decision path."""
    removed = path[offset + path_index]
    one_fraction = removed.one_fraction
    zero_fraction = removed.zero_fraction
    next_one_portion = path[offset + unique_depth].pweight

    denom = float(unique_depth + 1)
    for i in range(unique_depth - 1, -1, -1):
        cur = path[offset + i]
        if one_fraction != 0:
            tmp = cur.pweight
            cur.pweight = next_one_portion * denom / ((i + 1) * one_fraction)
            next_one_portion = tmp - cur.pweight * zero_fraction * (unique_depth - i) / denom
        else:
            cur.pweight = (cur.pweight * denom) / (zero_fraction * (unique_depth - i))

    for i in range(path_index, unique_depth):
        cur = path[offset + i]
        nxt = path[offset + i + 1]
        cur.feature_index = nxt.feature_index
        cur.zero_fraction = nxt.zero_fraction
        cur.one_fraction = nxt.one_fraction


def unwound_path_sum(path, offset, unique_depth, path_index):
    """Total permutation weight the path would have if ``path_index`` were unwound.

    Same arithmetic as ``unwind_path`` but the path is left untouched.
    """
    removed = path[offset + path_index]
    one_fraction = removed.one_fraction
    zero_fraction = removed.zero_fraction
    next_one_portion = path[offset + unique_depth].pweight
    total = 0.0

    denom = float(unique_depth + 1)
    for i in range(unique_depth - 1, -1, -1):
        if one_fraction != 0:
            tmp = next_one_portion * denom / ((i + 1) * one_fraction)
            total += tmp
            next_one_portion = (path[offset + i].pweight
                                - tmp * zero_fraction * ((unique_depth - i) / denom))
        else:
            total += (path[offset + i].pweight / zero_fraction) / ((unique_depth - i) / denom)
    return total


def tree_shap(tree, feat, phi, node_index, unique_depth, path, parent_offset,
              parent_zero_fraction, parent_one_fraction, parent_feature_index,
              condition, condition_feature, condition_fraction):
    """Recursively add the SHAP values of the subtree at ``node_index`` to ``phi``.

    Parameters
    ----------
    tree : RegTree
        Tree whose node statistics (``sum_hess``) are filled.
    feat : FVec
        Dense feature vector of the explained instance.
    phi : ndarray
        Output buffer indexed by feature.
    node_index : int
        Current node.
    unique_depth : int
        Number of unique features above the current node.
    path : list of PathElement
        Scratch path; the parent's run starts at ``parent_offset``.
    parent_zero_fraction : float
        Fraction of the parent path weight coming as 0 (integrated).
    parent_one_fraction : float
        Fraction of the parent path weight coming as 1 (fixed).
    parent_feature_index : int
        Feature the parent node split on, -1 at the root.
    condition : int
        Fix one feature either off (-1), on (1) or not at all (0).
    condition_feature : int
        The feature fixed by ``condition``.
    condition_fraction : float
        Fraction of the current weight that matches the conditioning.
    """
    # no weight is coming down to us
    if condition_fraction == 0:
        return

    node = tree[node_index]

    offset = parent_offset + unique_depth + 1
    for i in range(unique_depth + 1):
        path[offset + i].copy_from(path[parent_offset + i])

    if condition == 0 or condition_feature != parent_feature_index:
        extend_path(path, offset, unique_depth, parent_zero_fraction,
                    parent_one_fraction, parent_feature_index)

    if node.is_leaf:
        leaf_value = node.leaf_value
        for i in range(1, unique_depth + 1):
            w = unwound_path_sum(path, offset, unique_depth, i)
            el = path[offset + i]
            phi[el.feature_index] += (w * (el.one_fraction - el.zero_fraction)
                                      * leaf_value * condition_fraction)
        return

    split_index = node.split_index

    # find which branch is "hot" (meaning x would follow it)
    hot_index = tree.get_next(node_index, feat.fvalue(split_index),
                              feat.is_missing(split_index))
    if hot_index == node.left_child:
        cold_index = node.right_child
    else:
        cold_index = node.left_child

    w = tree.stat(node_index).sum_hess
    if w == 0:
        raise ValueError(
            "Node %d has zero sum_hess; node statistics must be filled "
            "before computing contributions" % node_index)
    hot_zero_fraction = tree.stat(hot_index).sum_hess / w
    cold_zero_fraction = tree.stat(cold_index).sum_hess / w
    incoming_zero_fraction = 1.0
    incoming_one_fraction = 1.0

    # if we have already split on this feature, undo that split so we can
    # redo it for this node
    for path_index in range(unique_depth + 1):
        if path[offset + path_index].feature_index == split_index:
            incoming_zero_fraction = path[offset + path_index].zero_fraction
            incoming_one_fraction = path[offset + path_index].one_fraction
            unwind_path(path, offset, unique_depth, path_index)
            unique_depth -= 1
            break

    # divide up the condition_fraction among the recursive calls
    hot_condition_fraction = condition_fraction
    cold_condition_fraction = condition_fraction
    if condition > 0 and split_index == condition_feature:
        cold_condition_fraction = 0.0
        unique_depth -= 1
    elif condition < 0 and split_index == condition_feature:
        hot_condition_fraction *= hot_zero_fraction
        cold_condition_fraction *= cold_zero_fraction
        unique_depth -= 1

    # a branch with both fractions at zero carries no path weight
    hot_zero_fraction *= incoming_zero_fraction
    if hot_zero_fraction != 0 or incoming_one_fraction != 0:
        tree_shap(tree, feat, phi, hot_index, unique_depth + 1, path, offset,
                  hot_zero_fraction, incoming_one_fraction,
                  split_index, condition, condition_feature, hot_condition_fraction)

    cold_zero_fraction *= incoming_zero_fraction
    if cold_zero_fraction != 0:
        tree_shap(tree, feat, phi, cold_index, unique_depth + 1, path, offset,
                  cold_zero_fraction, 0.0,
                  split_index, condition, condition_feature, cold_condition_fraction)
