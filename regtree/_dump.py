# regtree/_dump.py
import json

# feature types of a feature map
INDICATOR = 'i'
QUANTITATIVE = 'q'
INTEGER = 'int'
FLOAT = 'float'

_FEATURE_TYPES = (INDICATOR, QUANTITATIVE, INTEGER, FLOAT)


class FeatureMap:
    """Names and types of the features, used to render a tree."""

    def __init__(self):
        self.names = []
        self.types = []

    def push_back(self, fid, name, ftype):
        """Append feature ``fid``; ids must be pushed in order."""
        if fid != len(self.names):
            raise ValueError("Feature map ids must be consecutive: expected %d, got %d"
                             % (len(self.names), fid))
        if ftype not in _FEATURE_TYPES:
            raise ValueError("Unknown feature type %r, expected one of %s"
                             % (ftype, ", ".join(_FEATURE_TYPES)))
        self.names.append(name)
        self.types.append(ftype)

    @classmethod
    def load(cls, lines):
        """Parse ``<id>\\t<name>\\t<type>`` lines."""
        fmap = cls()
        for line in lines:
            line = line.strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) != 3:
                raise ValueError("Malformed feature map line: %r" % line)
            fmap.push_back(int(parts[0]), parts[1], parts[2])
        return fmap

    def __len__(self):
        return len(self.names)

    def name(self, idx):
        return self.names[idx]

    def type(self, idx):
        return self.types[idx]


def _fmt(value):
    return '%g' % value


def _split_text(tree, fmap, nid):
    node = tree[nid]
    split_index = node.split_index
    cond = node.split_cond
    if split_index < len(fmap):
        name = fmap.name(split_index)
        ftype = fmap.type(split_index)
        if ftype == INDICATOR:
            nyes = node.right_child if node.default_left else node.left_child
            return "%d:[%s] yes=%d,no=%d" % (nid, name, nyes, node.default_child)
        if ftype == INTEGER:
            return "%d:[%s<%d] yes=%d,no=%d,missing=%d" % (
                nid, name, int(cond + 1.0), node.left_child, node.right_child,
                node.default_child)
    else:
        name = "f%d" % split_index
    return "%d:[%s<%s] yes=%d,no=%d,missing=%d" % (
        nid, name, _fmt(cond), node.left_child, node.right_child,
        node.default_child)


def _dump_text(tree, fmap, nid, depth, with_stats, lines):
    node = tree[nid]
    stat = tree.stat(nid)
    indent = "\t" * depth
    if node.is_leaf:
        line = "%s%d:leaf=%s" % (indent, nid, _fmt(node.leaf_value))
        if with_stats:
            line += ",cover=%s" % _fmt(stat.sum_hess)
        lines.append(line)
        return

    line = indent + _split_text(tree, fmap, nid)
    if with_stats:
        line += ",gain=%s,cover=%s" % (_fmt(stat.loss_chg), _fmt(stat.sum_hess))
    lines.append(line)
    _dump_text(tree, fmap, node.left_child, depth + 1, with_stats, lines)
    _dump_text(tree, fmap, node.right_child, depth + 1, with_stats, lines)


def _dump_json(tree, fmap, nid, depth, with_stats):
    node = tree[nid]
    stat = tree.stat(nid)
    if node.is_leaf:
        out = {"nodeid": nid, "leaf": node.leaf_value}
        if with_stats:
            out["cover"] = stat.sum_hess
        return out

    split_index = node.split_index
    name = fmap.name(split_index) if split_index < len(fmap) else "f%d" % split_index
    out = {
        "nodeid": nid,
        "depth": depth,
        "split": name,
        "split_condition": node.split_cond,
        "yes": node.left_child,
        "no": node.right_child,
        "missing": node.default_child,
    }
    if with_stats:
        out["gain"] = stat.loss_chg
        out["cover"] = stat.sum_hess
    out["children"] = [
        _dump_json(tree, fmap, node.left_child, depth + 1, with_stats),
        _dump_json(tree, fmap, node.right_child, depth + 1, with_stats),
    ]
    return out


def dump_model(tree, fmap=None, with_stats=False, dump_format="text"):
    """Dump the model as text, one string per root.

    Parameters
    ----------
    tree : TreeModel
        Tree to render.
    fmap : FeatureMap, optional
        Feature names and types; features beyond the map print as ``f<idx>``.
    with_stats : bool
        Whether to dump gain and cover as well.
    dump_format : {"text", "json"}
        Output format.
    """
    if fmap is None:
        fmap = FeatureMap()
    if dump_format not in ("text", "json"):
        raise ValueError("Unknown dump format %r, expected 'text' or 'json'"
                         % dump_format)

    dumps = []
    for root_id in range(tree.param.num_roots):
        if dump_format == "text":
            lines = []
            _dump_text(tree, fmap, root_id, 0, with_stats, lines)
            dumps.append("\n".join(lines) + "\n")
        else:
            dumps.append(json.dumps(_dump_json(tree, fmap, root_id, 0, with_stats)))
    return dumps
