"""Tree reconstruction for indentation-encoded reports."""

import logging
from typing import List, Dict, Tuple, Iterable

from krakenclip.models.taxonomic import TaxonNode, KrakenReport

logger = logging.getLogger(__name__)

def build_hierarchy(nodes: Iterable[TaxonNode]) -> List[TaxonNode]:
    """
    Rebuild the nested tree from nodes given in report (pre-order) order.

    Open ancestors are kept on a stack. Every incoming node closes each open
    node at the same or a deeper level; a closed node becomes the last child
    of the node below it on the stack, or a top-level entry when the stack
    is empty.

    Args:
        nodes: Depth-tagged nodes in file order

    Returns:
        List of top-level nodes with their descendants attached
    """
    forest: List[TaxonNode] = []
    stack: List[TaxonNode] = []

    def close_top() -> None:
        closed = stack.pop()
        if stack:
            stack[-1].add_child(closed)
        else:
            forest.append(closed)

    for node in nodes:
        while stack and stack[-1].depth >= node.depth:
            close_top()
        stack.append(node)

    while stack:
        close_top()

    return forest

def build_taxon_index(trees: List[TaxonNode]) -> Dict[int, Tuple[int, ...]]:
    """
    Map each taxid to the path of its node.

    The first path element is the position of the tree in ``trees``, the
    remaining elements are child indices. When a taxid occurs more than once
    the first pre-order occurrence is kept.

    Args:
        trees: Top-level trees in report order

    Returns:
        Dict mapping taxid to node path
    """
    index: Dict[int, Tuple[int, ...]] = {}
    duplicates = 0

    for tree_pos, tree in enumerate(trees):
        stack: List[Tuple[TaxonNode, Tuple[int, ...]]] = [(tree, (tree_pos,))]
        while stack:
            node, path = stack.pop()
            if node.taxid in index:
                duplicates += 1
                logger.debug(f"Duplicate taxid {node.taxid} ({node.name}), keeping first occurrence")
            else:
                index[node.taxid] = path
            for child_pos in range(len(node.children) - 1, -1, -1):
                stack.append((node.children[child_pos], path + (child_pos,)))

    if duplicates:
        logger.warning(f"{duplicates} duplicate taxid entries in report, first occurrence kept")

    return index

def build_report(forest: List[TaxonNode]) -> KrakenReport:
    """
    Turn a rebuilt forest into a report with unclassified and root entries.

    Args:
        forest: Output of build_hierarchy

    Returns:
        KrakenReport with its taxon index built
    """
    unclassified = None
    remaining = list(forest)

    if remaining and remaining[0].depth == 0 and remaining[0].name == "unclassified":
        unclassified = remaining.pop(0)

    if remaining:
        root = remaining.pop(0)
    else:
        logger.warning("No root entry found in report, using default root")
        root = TaxonNode.default_root()

    if remaining:
        logger.warning(f"Ignoring {len(remaining)} top-level entries after the root")

    report = KrakenReport(root=root, unclassified=unclassified)
    report.taxon_index = build_taxon_index(report.trees())
    return report
