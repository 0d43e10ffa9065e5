# regtree/_io.py
"""Binary load / save of a single tree.

Layout (little endian)::

    header   37 x int32: num_roots, num_nodes, num_deleted, max_depth,
             num_feature, size_leaf_vector, 31 reserved
    nodes    num_nodes x NODE_DTYPE (20 bytes)
    stats    num_nodes x STAT_DTYPE (16 bytes)
    leafvec  uint64 length + length x float32, only if size_leaf_vector != 0
"""
import io
import logging
import struct

import numpy as np

from ._tree import RegTree, NODE_DTYPE, STAT_DTYPE, param_from_header
from ._utils import DTYPE

logger = logging.getLogger(__name__)

_N_RESERVED = 31
HEADER_STRUCT = struct.Struct('<%di' % (6 + _N_RESERVED))
_LENGTH_STRUCT = struct.Struct('<Q')


def _read_exact(fi, n_bytes, what):
    buf = fi.read(n_bytes)
    if len(buf) != n_bytes:
        raise ValueError("Unexpected end of stream while reading %s: "
                         "expected %d bytes, got %d" % (what, n_bytes, len(buf)))
    return buf


def save_model(tree, fo):
    """Write ``tree`` to the binary stream ``fo``."""
    param = tree.param
    if param.num_nodes != len(tree.nodes) or param.num_nodes != len(tree.stats):
        raise ValueError(
            "Inconsistent tree: num_nodes=%d, %d nodes, %d stats"
            % (param.num_nodes, len(tree.nodes), len(tree.stats)))
    if param.num_nodes == 0:
        raise ValueError("Cannot save a tree without nodes")

    fo.write(HEADER_STRUCT.pack(
        param.num_roots, param.num_nodes, param.num_deleted, param.max_depth,
        param.num_feature, param.size_leaf_vector, *([0] * _N_RESERVED)))
    fo.write(tree._get_node_ndarray().tobytes())
    fo.write(tree._get_stat_ndarray().tobytes())
    if param.size_leaf_vector != 0:
        leaf_vector = np.ascontiguousarray(tree.leaf_vector, dtype='<f4')
        fo.write(_LENGTH_STRUCT.pack(leaf_vector.shape[0]))
        fo.write(leaf_vector.tobytes())
    logger.debug("Saved tree with %d nodes (%d deleted)",
                 param.num_nodes, param.num_deleted)


def load_model(fi):
    """Read a tree from the binary stream ``fi``."""
    header = HEADER_STRUCT.unpack(_read_exact(fi, HEADER_STRUCT.size, "header"))
    param = param_from_header(header[:6])
    n = param.num_nodes

    nodes = np.frombuffer(_read_exact(fi, NODE_DTYPE.itemsize * n, "nodes"),
                          dtype=NODE_DTYPE)
    stats = np.frombuffer(_read_exact(fi, STAT_DTYPE.itemsize * n, "stats"),
                          dtype=STAT_DTYPE)
    leaf_vector = None
    if param.size_leaf_vector != 0:
        (length,) = _LENGTH_STRUCT.unpack(
            _read_exact(fi, _LENGTH_STRUCT.size, "leaf vector length"))
        leaf_vector = np.frombuffer(
            _read_exact(fi, 4 * length, "leaf vector"), dtype='<f4').astype(DTYPE)

    tree = RegTree()
    tree.param = param
    tree._set_ndarrays(nodes, stats, leaf_vector)
    logger.debug("Loaded tree with %d nodes (%d deleted)",
                 param.num_nodes, param.num_deleted)
    return tree


def save_raw(tree):
    """Serialise ``tree`` to bytes."""
    buf = io.BytesIO()
    save_model(tree, buf)
    return buf.getvalue()


def load_raw(data):
    """Deserialise a tree from bytes produced by ``save_raw``."""
    return load_model(io.BytesIO(data))
