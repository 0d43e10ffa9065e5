"""
regtree - regression tree model of a boosted ensemble, with prediction and
TreeSHAP feature attribution
"""

from ._tree import Node, NodeStat, TreeParam, TreeModel, RegTree
from ._fvec import FVec
from ._shap import PathElement
from ._io import save_model, load_model, save_raw, load_raw
from ._dump import FeatureMap, dump_model

__all__ = [
    'Node',
    'NodeStat',
    'TreeParam',
    'TreeModel',
    'RegTree',
    'FVec',
    'PathElement',
    'save_model',
    'load_model',
    'save_raw',
    'load_raw',
    'FeatureMap',
    'dump_model',
]
