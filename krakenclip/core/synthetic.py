"""Synthetic reports, classification logs and reads for testing."""

import logging
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Dict, Tuple, Optional, Union, Iterator

import numpy as np
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from krakenclip.models.errors import OutputError
from krakenclip.models.taxonomic import KrakenReport

logger = logging.getLogger(__name__)

RANKS_BY_DEPTH = ['D', 'P', 'C', 'O', 'F', 'G']
TAXID_RANGE = (10, 1_000_000)
BASES = np.array(list("ACGT"))

@dataclass
class GeneratorParams:
    """Shape of a generated report."""
    num_lines: int = 100_000
    max_depth: int = 30
    max_children: int = 50
    max_fragments: int = 10_000_000
    seed: Optional[int] = None

# Shape presets by data type name
DATA_TYPES: Dict[str, Dict[str, int]] = {
    'wide': {'max_depth': 5, 'max_children': 100},
    'deep': {'max_depth': 50, 'max_children': 3},
    'fragments': {'max_fragments': 100_000_000},
    'dense': {'max_depth': 10, 'max_children': 10, 'max_fragments': 5_000_000},
    'lines': {'max_fragments': 1_000_000},
    'complex': {'max_depth': 35, 'max_children': 70, 'max_fragments': 30_000_000},
    'extreme': {'max_depth': 50, 'max_children': 100, 'max_fragments': 100_000_000},
    'unbalanced': {'max_depth': 60, 'max_children': 40},
    'mixed': {'max_depth': 25, 'max_children': 60, 'max_fragments': 20_000_000},
    'balanced': {'max_depth': 15, 'max_children': 20, 'max_fragments': 5_000_000},
    'random': {},
}

def preset_params(data_type: str = 'balanced', num_lines: int = 100_000, seed: Optional[int] = None) -> GeneratorParams:
    """
    Generator parameters for a named data type.

    Unknown names fall back to 'balanced'. 'lines' triples the line count
    and 'random' draws its shape from the seed.
    """
    if data_type not in DATA_TYPES:
        logger.warning(f"Unknown data type '{data_type}', using 'balanced'")
        data_type = 'balanced'

    params = replace(GeneratorParams(num_lines=num_lines, seed=seed), **DATA_TYPES[data_type])
    if data_type == 'lines':
        params.num_lines = num_lines * 3
    elif data_type == 'random':
        rng = np.random.default_rng(seed)
        params.max_depth = int(rng.integers(5, 40))
        params.max_children = int(rng.integers(3, 80))
        params.max_fragments = int(rng.integers(1_000_000, 50_000_000))
    return params

class ReportGenerator:
    """Random pre-order report writer."""

    def __init__(self, params: GeneratorParams):
        self.params = params
        self.rng = np.random.default_rng(params.seed)
        self._used_taxids = {0, 1}
        self._next_fallback_taxid = TAXID_RANGE[1]

    def _new_taxid(self) -> int:
        for _ in range(10):
            taxid = int(self.rng.integers(*TAXID_RANGE))
            if taxid not in self._used_taxids:
                self._used_taxids.add(taxid)
                return taxid
        while self._next_fallback_taxid in self._used_taxids:
            self._next_fallback_taxid += 1
        self._used_taxids.add(self._next_fallback_taxid)
        return self._next_fallback_taxid

    def _split_fragments(self, fragments: int, generation: int) -> List[int]:
        """Clade sizes of the children of a node, a fifth stays direct."""
        max_depth = self.params.max_depth
        max_children = max(1, self.params.max_children)
        if fragments == 0 or generation >= max_depth:
            return []

        if generation < 3:
            base_children = max_children // 2 + int(self.rng.integers(0, max(1, max_children // 2)))
        else:
            base_children = int(self.rng.integers(0, max_children))
        depth_factor = 1.0 - (generation / max_depth) * 0.8
        num_children = int(round(base_children * depth_factor))
        if num_children == 0:
            return []

        weights = self.rng.uniform(1.0, 10.0, num_children)
        remaining = fragments - fragments // 5
        counts = self.rng.multinomial(remaining, weights / weights.sum())
        return [int(c) for c in counts if c > 0]

    def _build_rows(self, classified: int) -> List[List]:
        """Pre-order rows [depth, clade, child_sum, rank, taxid], root first."""
        rows: List[List] = []
        limit = max(self.params.num_lines - 1, 1)
        # (parent row, clade, depth), children pushed in reverse to keep order
        stack: List[Tuple[int, int, int]] = [(-1, classified, 0)]
        while stack and len(rows) < limit:
            parent, clade, depth = stack.pop()
            if depth == 0:
                rank, taxid = 'R', 1
            else:
                rank = RANKS_BY_DEPTH[depth - 1] if depth - 1 < len(RANKS_BY_DEPTH) else 'S'
                taxid = self._new_taxid()
            row_index = len(rows)
            rows.append([depth, clade, 0, rank, taxid])
            if parent >= 0:
                rows[parent][2] += clade
            for child_clade in reversed(self._split_fragments(clade, depth)):
                stack.append((row_index, child_clade, depth + 1))
        return rows

    def generate(self, output_path: Union[str, Path]) -> int:
        """
        Write a report and return the number of lines written.

        Ten percent of the fragments are unclassified. Clade counts always
        equal direct counts plus the clades of the written children.

        Raises:
            OutputError: If the file cannot be written
        """
        start = time.perf_counter()
        total = self.params.max_fragments
        unclassified = total // 10
        rows = self._build_rows(total - unclassified)

        def percent(count: int) -> float:
            return (count / total) * 100.0 if total else 0.0

        try:
            with open(output_path, "w", encoding="utf-8") as handle:
                handle.write(f"{percent(unclassified):.2f}\t{unclassified}\t{unclassified}\tU\t0\tunclassified\n")
                for depth, clade, child_sum, rank, taxid in rows:
                    name = "root" if depth == 0 else f"taxon_{taxid}"
                    handle.write(
                        f"{percent(clade):.2f}\t{clade}\t{clade - child_sum}\t{rank}\t{taxid}\t{'  ' * depth}{name}\n"
                    )
        except OSError as e:
            raise OutputError(f"Error writing test report: {str(e)}")

        lines = len(rows) + 1
        logger.info(f"Generated {lines} lines in {time.perf_counter() - start:.2f}s")
        return lines

def generate_report(params: GeneratorParams, output_path: Union[str, Path]) -> int:
    """Write a synthetic report, see ReportGenerator."""
    return ReportGenerator(params).generate(output_path)

def generate_reads(
    report: KrakenReport,
    num_reads: int,
    log_path: Union[str, Path],
    sequences_path: Union[str, Path],
    sequence_format: str = 'fastq',
    read_length: int = 150,
    seed: Optional[int] = None
) -> int:
    """
    Write a classification log and the matching random reads.

    Reads are assigned to taxa in proportion to their direct read counts.

    Args:
        report: Report the reads are drawn from
        num_reads: Number of reads
        log_path: Output classification log
        sequences_path: Output FASTA/FASTQ file
        sequence_format: 'fasta' or 'fastq'
        read_length: Length of each read
        seed: Random seed

    Returns:
        Number of reads written

    Raises:
        OutputError: If the files cannot be written
    """
    if sequence_format not in ('fasta', 'fastq'):
        raise OutputError(f"Unsupported sequence format: {sequence_format}")

    rng = np.random.default_rng(seed)
    nodes = [node for node in report.iter_nodes() if node.direct_reads > 0] or [report.root]
    weights = np.array([max(node.direct_reads, 1) for node in nodes], dtype=float)
    picks = rng.choice(len(nodes), size=num_reads, p=weights / weights.sum())

    def records(log_handle) -> Iterator[SeqRecord]:
        for i, pick in enumerate(picks, start=1):
            node = nodes[pick]
            read_id = f"read_{i}"
            status = 'U' if node.taxid == 0 else 'C'
            log_handle.write(f"{status}\t{read_id}\t{node.taxid}\t{read_length}\t{node.taxid}:{read_length}\n")
            record = SeqRecord(
                Seq(''.join(BASES[rng.integers(0, 4, read_length)])),
                id=read_id,
                description=f"taxid={node.taxid}"
            )
            if sequence_format == 'fastq':
                record.letter_annotations["phred_quality"] = rng.integers(20, 41, read_length).tolist()
            yield record

    try:
        with open(log_path, "w", encoding="utf-8") as log_handle, \
                open(sequences_path, "w", encoding="utf-8") as seq_handle:
            count = SeqIO.write(records(log_handle), seq_handle, sequence_format)
    except OSError as e:
        raise OutputError(f"Error writing test reads: {str(e)}")

    logger.info(f"Generated {count} reads in {sequences_path} and {log_path}")
    return count
