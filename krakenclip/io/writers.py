"""File writers for KrakenClip."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Set, Optional, Union, Any, Iterable

import pandas as pd

from krakenclip import __version__
from krakenclip.models.errors import OutputError
from krakenclip.models.taxonomic import (
    TaxonNode, KrakenReport, TaxonInfo, ReadSelection, ExtractionResult
)

logger = logging.getLogger(__name__)

BIOM_FORMAT = "Biological Observation Matrix 1.0.0"
BIOM_FORMAT_URL = "http://biom-format.org/documentation/format_versions/biom-1.0.html"
STATS_COLUMNS = ['taxid', 'name', 'rank', 'reads_in_log', 'reads_extracted']

def node_to_dict(node: TaxonNode) -> Dict[str, Any]:
    """Recursive JSON-ready mapping of a node and its subtree."""
    return {
        "name": node.name,
        "taxid": node.taxid,
        "rank": node.rank,
        "percentage": node.percentage,
        "clade_reads": node.clade_reads,
        "direct_reads": node.direct_reads,
        "level": node.level,
        "children": [node_to_dict(child) for child in node.children],
    }

def write_json_report(report: KrakenReport, output_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Write the report tree as JSON.

    Args:
        report: Parsed report
        output_path: Path to output .json file

    Returns:
        The dumped mapping

    Raises:
        OutputError: If the file cannot be written
    """
    data: Dict[str, Any] = {"root": node_to_dict(report.root)}
    if report.unclassified is not None:
        data["unclassified"] = node_to_dict(report.unclassified)

    try:
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
    except OSError as e:
        raise OutputError(f"Error writing JSON report: {str(e)}")

    logger.info(f"Wrote JSON report to {output_path}")
    return data

def _biom_skeleton(table_id: str, shape: List[int]) -> Dict[str, Any]:
    return {
        "id": table_id,
        "format": BIOM_FORMAT,
        "format_url": BIOM_FORMAT_URL,
        "type": "OTU table",
        "generated_by": f"KrakenClip {__version__}",
        "date": datetime.now().astimezone().isoformat(),
        "matrix_type": "dense",
        "matrix_element_type": "float",
        "shape": shape,
    }

def report_to_biom(report: KrakenReport, sample_name: str, normalize: bool = False) -> Dict[str, Any]:
    """
    Build a single-sample BIOM table from a report.

    Rows are all taxa of the classified tree in pre-order, followed by the
    unclassified subtree.

    Args:
        report: Parsed report
        sample_name: Column ID
        normalize: Report percentages instead of clade read counts

    Returns:
        BIOM table as a JSON-ready dict
    """
    nodes = list(report.root.iter_preorder())
    if report.unclassified is not None:
        nodes.extend(report.unclassified.iter_preorder())

    rows = [
        {
            "id": str(node.taxid),
            "metadata": {
                "name": node.name,
                "taxid": str(node.taxid),
                "rank": node.rank,
                "level": str(node.level),
            },
        }
        for node in nodes
    ]
    data = [[float(node.percentage) if normalize else float(node.clade_reads)] for node in nodes]

    table = _biom_skeleton(f"krakenclip_{sample_name}", [len(nodes), 1])
    table["data"] = data
    table["rows"] = rows
    table["columns"] = [{"id": sample_name, "metadata": {}}]
    return table

def matrix_to_biom(matrix_df: pd.DataFrame, rank: str) -> Dict[str, Any]:
    """
    Build a BIOM table from an abundance matrix DataFrame.

    Args:
        matrix_df: Matrix indexed by taxon, one column per sample
        rank: Rank code of the rows

    Returns:
        BIOM table as a JSON-ready dict
    """
    table = _biom_skeleton(f"krakenclip_matrix_{rank}", [len(matrix_df.index), len(matrix_df.columns)])
    table["data"] = matrix_df.astype(float).values.tolist()
    table["rows"] = [{"id": str(taxon), "metadata": {"rank": rank}} for taxon in matrix_df.index]
    table["columns"] = [{"id": str(sample), "metadata": {}} for sample in matrix_df.columns]
    return table

def write_biom(table: Dict[str, Any], output_path: Union[str, Path]) -> None:
    """Write a BIOM table as JSON."""
    try:
        with open(output_path, "w", encoding="utf-8") as handle:
            json.dump(table, handle, indent=2)
    except OSError as e:
        raise OutputError(f"Error writing BIOM table: {str(e)}")
    logger.info(f"Wrote BIOM table to {output_path}")

def write_abundance_matrix(matrix_df: pd.DataFrame, output_path: Union[str, Path]) -> None:
    """Write an abundance matrix as TSV with six decimals."""
    try:
        matrix_df.to_csv(output_path, sep='\t', float_format='%.6f')
    except OSError as e:
        raise OutputError(f"Error writing abundance matrix: {str(e)}")
    logger.info(f"Abundance matrix generated: {output_path}")

def _taxid_sort_key(taxid: str):
    return (0, int(taxid), '') if taxid.isdigit() else (1, 0, taxid)

def write_extraction_stats(
    output_path: Union[str, Path],
    taxids: Iterable[str],
    selection: ReadSelection,
    result: ExtractionResult,
    report: Optional[KrakenReport] = None
) -> pd.DataFrame:
    """
    Write per-taxon extraction statistics as CSV.

    Args:
        output_path: Path to output .csv file
        taxids: Taxids that were searched for
        selection: Log filter result with per-taxon read IDs
        result: Extraction result with collected written IDs
        report: Report used to name the taxa, if any

    Returns:
        DataFrame of the written statistics

    Raises:
        OutputError: If the file cannot be written
    """
    per_taxon = selection.per_taxon or {}
    written = result.written_ids()

    records = []
    for taxid in sorted(set(taxids) | set(per_taxon), key=_taxid_sort_key):
        node = report.get_taxon(int(taxid)) if (report is not None and taxid.isdigit()) else None
        reads = per_taxon.get(taxid, set())
        records.append({
            'taxid': taxid,
            'name': node.name if node else '',
            'rank': node.rank if node else '',
            'reads_in_log': len(reads),
            'reads_extracted': len(reads & written),
        })

    stats_df = pd.DataFrame(records, columns=STATS_COLUMNS)
    try:
        stats_df.to_csv(output_path, index=False)
    except OSError as e:
        raise OutputError(f"Error writing extraction statistics: {str(e)}")

    logger.info(f"Wrote extraction statistics to {output_path}")
    return stats_df

def _tree_line(prefix: str, node: TaxonNode) -> str:
    return f"{prefix}{node.taxid}: {node.name} (C{node.clade_reads}) (D{node.direct_reads})"

def _subtree_lines(children: List[TaxonNode], prefix: str) -> List[str]:
    lines = []
    for i, child in enumerate(children):
        is_last = i == len(children) - 1
        lines.append(_tree_line(prefix + ("└── " if is_last else "├── "), child))
        lines.extend(_subtree_lines(child.children, prefix + ("    " if is_last else "│   ")))
    return lines

def format_taxon_info(info: TaxonInfo) -> str:
    """Text rendering of a taxon, its lineage and its subtree."""
    taxon = info.taxon
    lines = [
        "Taxon Information:",
        f"ID: {taxon.taxid}",
        f"Name: {taxon.name}",
        f"Level: {taxon.level}",
        f"Percentage: {taxon.percentage}%",
        f"Clade Fragments: {taxon.clade_reads}",
        f"Direct Fragments: {taxon.direct_reads}",
        f"Rank Code: {taxon.rank}",
        "",
        "Taxonomic Subtree - C clade fragments - D direct fragments",
    ]
    for i, parent in enumerate(info.parents):
        lines.append(_tree_line("│   " * i + "├── ", parent))
    depth = len(info.parents)
    lines.append(_tree_line("│   " * depth + "└── ", taxon))
    lines.extend(_subtree_lines(taxon.children, "│   " * (depth + 1)))
    return "\n".join(lines)

def format_taxa_table(nodes: List[TaxonNode]) -> str:
    """Tab-separated listing of nodes with a header line."""
    lines = ["taxid\trank\tname\tpercentage\tclade_reads\tdirect_reads"]
    for node in nodes:
        lines.append(
            f"{node.taxid}\t{node.rank}\t{node.name}\t{node.percentage:.2f}\t{node.clade_reads}\t{node.direct_reads}"
        )
    return "\n".join(lines)

def format_report_summary(summary: Dict[str, Any]) -> str:
    """Text rendering of summarize_report output."""
    lines = [
        "Taxonomic Information:",
        f"  Taxa in classified tree: {summary['total_taxa']}",
        f"  Maximum depth: {summary['max_depth']}",
        f"  Total reads: {summary['total_reads']}",
        f"  Classified reads: {summary['classified_reads']} ({summary['classified_percentage']:.2f}%)",
        f"  Unclassified reads: {summary['unclassified_reads']}",
        "  Taxa per rank:",
    ]
    for rank, count in sorted(summary['rank_counts'].items()):
        lines.append(f"    {rank}: {count}")
    return "\n".join(lines)
