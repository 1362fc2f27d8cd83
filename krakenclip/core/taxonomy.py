"""Taxonomy queries over a parsed report."""

import re
import logging
import operator
from collections import Counter
from typing import List, Dict, Set, Optional, Union, Any, Iterable, Callable

from krakenclip.io.parsers import normalize_taxid
from krakenclip.models.config import ConfigError
from krakenclip.models.errors import TaxonomyError
from krakenclip.models.taxonomic import TaxonNode, KrakenReport, TaxonInfo

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = {
    'percentage': lambda node: node.percentage,
    'clade_reads': lambda node: node.clade_reads,
    'direct_reads': lambda node: node.direct_reads,
    'taxid': lambda node: node.taxid,
    'depth': lambda node: node.depth,
    'level': lambda node: node.depth,
}
TEXT_FIELDS = {
    'rank': lambda node: node.rank,
    'name': lambda node: node.name,
}
OPERATORS = {
    '>=': operator.ge,
    '<=': operator.le,
    '!=': operator.ne,
    '=': operator.eq,
    '>': operator.gt,
    '<': operator.lt,
}
CONDITION_RE = re.compile(r'^\s*(\w+)\s*(>=|<=|!=|=|>|<|~)\s*(.*?)\s*$')

def expand_taxids(
    report: Optional[KrakenReport],
    seeds: Iterable[Union[str, int]],
    include_children: bool = False,
    include_parents: bool = False
) -> Set[str]:
    """
    Grow a taxid set with the descendants and/or ancestors of its members.

    Descendants are collected below every node carrying a seed taxid.
    Ancestors are taken from the first pre-order occurrence only, the same
    node the taxon index resolves to. Seeds missing from the report are
    kept but contribute nothing.

    Args:
        report: Parsed report, required when either flag is set
        seeds: Taxids given by the user
        include_children: Add every descendant of the seeds
        include_parents: Add every ancestor of the seeds

    Returns:
        Set of taxids as strings

    Raises:
        ConfigError: If expansion is requested without a report
    """
    if (include_children or include_parents) and report is None:
        raise ConfigError("Including children or parents requires a report")

    expanded = {normalize_taxid(seed) for seed in seeds}
    if report is None or not (include_children or include_parents):
        return expanded

    numeric_seeds = {int(seed) for seed in expanded if seed.isdigit()}
    missing = sorted(seed for seed in numeric_seeds if seed not in report.taxon_index)
    if missing:
        logger.debug(f"Taxids not present in report: {missing}")

    if include_children:
        for tree in report.trees():
            stack = [tree]
            while stack:
                node = stack.pop()
                if node.taxid in numeric_seeds:
                    # Nested matches are part of this subtree already
                    expanded.update(str(n.taxid) for n in node.iter_preorder())
                else:
                    stack.extend(node.children)

    if include_parents:
        for taxid in numeric_seeds:
            expanded.update(str(n.taxid) for n in report.get_lineage(taxid))

    logger.info(f"Expanded {len(numeric_seeds)} seed taxids to {len(expanded)} taxids")
    return expanded

def find_taxon_info(report: KrakenReport, taxid: int) -> Optional[TaxonInfo]:
    """
    Look up a taxon with its lineage and all of its descendants.

    Args:
        report: Parsed report
        taxid: Taxid to look up

    Returns:
        TaxonInfo, or None when the taxid is not in the report
    """
    taxon = report.get_taxon(taxid)
    if taxon is None:
        return None
    descendants = list(taxon.iter_preorder())[1:]
    return TaxonInfo(taxon=taxon, parents=report.get_lineage(taxid), children=descendants)

def search_taxa(report: KrakenReport, term: str) -> List[TaxonNode]:
    """Case-insensitive name search, results in report order."""
    needle = term.lower()
    return [node for node in report.iter_nodes() if needle in node.name.lower()]

def _compile_condition(condition: str) -> Callable[[TaxonNode], bool]:
    match = CONDITION_RE.match(condition)
    if not match:
        raise TaxonomyError(f"Invalid filter condition: '{condition}'")
    field_name, op, value = match.groups()

    if field_name in NUMERIC_FIELDS:
        if op == '~':
            raise TaxonomyError(f"Operator '~' is only valid for text fields, got '{field_name}'")
        try:
            threshold = float(value)
        except ValueError:
            raise TaxonomyError(f"Filter value for '{field_name}' must be numeric, got '{value}'")
        getter = NUMERIC_FIELDS[field_name]
        compare = OPERATORS[op]
        return lambda node: compare(getter(node), threshold)

    if field_name in TEXT_FIELDS:
        getter = TEXT_FIELDS[field_name]
        if op == '~':
            needle = value.lower()
            return lambda node: needle in getter(node).lower()
        if op not in ('=', '!='):
            raise TaxonomyError(f"Operator '{op}' is not valid for text field '{field_name}'")
        compare = OPERATORS[op]
        return lambda node: compare(getter(node), value)

    known = sorted(list(NUMERIC_FIELDS) + list(TEXT_FIELDS))
    raise TaxonomyError(f"Unknown filter field '{field_name}'. Known fields: {known}")

def filter_taxa(report: KrakenReport, expression: str) -> List[TaxonNode]:
    """
    Select nodes matching every comma-separated condition of an expression.

    Conditions look like ``rank=S``, ``percentage>=1.5`` or ``name~coli``
    (case-insensitive substring).

    Raises:
        TaxonomyError: If the expression cannot be parsed
    """
    conditions = [c for c in expression.split(',') if c.strip()]
    if not conditions:
        raise TaxonomyError("Empty filter expression")
    predicates = [_compile_condition(c) for c in conditions]
    return [node for node in report.iter_nodes() if all(p(node) for p in predicates)]

def summarize_report(report: KrakenReport) -> Dict[str, Any]:
    """Aggregated information about the classified tree."""
    rank_counts: Counter = Counter()
    max_depth = 0
    total_taxa = 0
    for node in report.root.iter_preorder():
        total_taxa += 1
        rank_counts[node.rank] += 1
        max_depth = max(max_depth, node.depth)

    total_reads = report.total_reads
    return {
        'total_taxa': total_taxa,
        'max_depth': max_depth,
        'rank_counts': dict(rank_counts),
        'classified_reads': report.classified_reads,
        'unclassified_reads': report.unclassified_reads,
        'total_reads': total_reads,
        'classified_percentage': (report.classified_reads / total_reads * 100.0) if total_reads else 0.0,
    }
