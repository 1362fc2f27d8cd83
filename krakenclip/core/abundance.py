"""Cross-sample abundance matrix construction."""

import logging
from collections import defaultdict
from pathlib import Path
from typing import List, Dict, Tuple, Optional, Union

import pandas as pd

from krakenclip.core.utils import TAXON_LEVELS, UNCLASSIFIED_NAME
from krakenclip.io.parsers import parse_kraken2_report
from krakenclip.io.writers import write_abundance_matrix
from krakenclip.models.errors import TaxonomyError
from krakenclip.models.taxonomic import KrakenReport

logger = logging.getLogger(__name__)

def validate_taxonomic_level(level: str) -> bool:
    """Check that a rank code can be used for an abundance matrix."""
    return any(code == level for code, _ in TAXON_LEVELS)

def get_taxonomic_level_name(level: str) -> Optional[str]:
    """Full name of a rank code, e.g. 'G' -> 'genus'."""
    for code, name in TAXON_LEVELS:
        if code == level:
            return name
    return None

class AbundanceMatrix:
    """Abundances of the taxa at one rank across several samples."""

    def __init__(self, rank: str = 'S', include_unclassified: bool = False):
        """Initialize an empty matrix.

        Args:
            rank: Rank code of the rows (D, K, P, C, O, F, G or S)
            include_unclassified: Add an 'Unclassified' row per sample

        Raises:
            TaxonomyError: If the rank code is not supported
        """
        if not validate_taxonomic_level(rank):
            valid = [code for code, _ in TAXON_LEVELS]
            raise TaxonomyError(f"Invalid taxonomic rank '{rank}'. Valid ranks: {valid}")
        self.rank = rank
        self.include_unclassified = include_unclassified
        self.samples: List[str] = []
        self._values: Dict[str, Dict[str, float]] = {}

    def add_sample(
        self,
        report: KrakenReport,
        sample_name: str,
        min_abundance: float = 0.0,
        normalize: bool = True
    ) -> None:
        """
        Add the abundances of one report as a sample column.

        Taxa sharing a name at the matrix rank are summed. Normalized values
        are percentages of all reads of the sample, unclassified included.

        Args:
            report: Parsed report
            sample_name: Column name
            min_abundance: Values below this are left out
            normalize: Percentages instead of raw clade read counts
        """
        counts: Dict[str, float] = defaultdict(float)
        for node in report.root.iter_preorder():
            if node.rank == self.rank:
                counts[node.name] += node.clade_reads
        if self.include_unclassified and report.unclassified is not None:
            counts[UNCLASSIFIED_NAME] += report.unclassified.clade_reads

        total = report.total_reads
        if normalize and total == 0:
            logger.warning(f"Sample {sample_name} has no reads, abundances set to 0")

        values: Dict[str, float] = {}
        for name, count in counts.items():
            if normalize:
                abundance = (count / total) * 100.0 if total else 0.0
            else:
                abundance = count
            if abundance >= min_abundance:
                values[name] = abundance

        if sample_name in self._values:
            logger.warning(f"Sample {sample_name} added twice, keeping the last one")
        else:
            self.samples.append(sample_name)
        self._values[sample_name] = values
        logger.debug(f"Sample {sample_name}: {len(values)} taxa at rank {self.rank}")

    def to_dataframe(self) -> pd.DataFrame:
        """
        Matrix as a DataFrame indexed by taxon name.

        Columns are the samples in sorted order, rows are sorted by name
        with 'Unclassified' first, missing values are 0.
        """
        df = pd.DataFrame(self._values, dtype=float)
        df = df.reindex(columns=sorted(self.samples)).fillna(0.0)
        order = sorted(df.index, key=lambda taxon: (taxon != UNCLASSIFIED_NAME, taxon))
        df = df.loc[order]
        df.index.name = 'Taxon'
        return df

    def write_matrix(self, output_path: Union[str, Path]) -> pd.DataFrame:
        """Write the matrix as TSV and return it."""
        df = self.to_dataframe()
        write_abundance_matrix(df, output_path)
        return df

def build_abundance_matrix(
    report_paths: List[Union[str, Path]],
    rank: str = 'S',
    min_abundance: float = 0.0,
    normalize: bool = True,
    include_unclassified: bool = False
) -> AbundanceMatrix:
    """
    Parse several reports into one matrix, one sample per report file.

    Sample names are the report file names without extension.
    """
    matrix = AbundanceMatrix(rank, include_unclassified)
    for report_path in report_paths:
        report_path = Path(report_path)
        report, _ = parse_kraken2_report(report_path)
        matrix.add_sample(report, report_path.stem, min_abundance, normalize)
    logger.info(f"Built {get_taxonomic_level_name(rank)} matrix for {len(matrix.samples)} samples")
    return matrix
