"""Data models for taxonomy reports."""

from typing import List, Dict, Tuple, Set, Optional, Iterator
from dataclasses import dataclass, field

@dataclass
class TaxonNode:
    """A node of the taxonomic tree recovered from a report."""
    depth: int
    percentage: float
    clade_reads: int
    direct_reads: int
    rank: str
    taxid: int
    name: str
    children: List['TaxonNode'] = field(default_factory=list)

    @property
    def level(self) -> int:
        """Hierarchy level, same as depth."""
        return self.depth

    def add_child(self, child: 'TaxonNode') -> None:
        self.children.append(child)

    def iter_preorder(self) -> Iterator['TaxonNode']:
        """Yield this node and all of its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    @classmethod
    def default_root(cls) -> 'TaxonNode':
        """Synthetic root used when a report has no usable root entry."""
        return cls(
            depth=0,
            percentage=0.0,
            clade_reads=0,
            direct_reads=0,
            rank="R",
            taxid=1,
            name="root"
        )

@dataclass
class KrakenReport:
    """Parsed hierarchical report."""
    root: TaxonNode
    unclassified: Optional[TaxonNode] = None
    taxon_index: Dict[int, Tuple[int, ...]] = field(default_factory=dict)

    def trees(self) -> List[TaxonNode]:
        """Top-level trees, unclassified first when present."""
        if self.unclassified is not None:
            return [self.unclassified, self.root]
        return [self.root]

    def iter_nodes(self) -> Iterator[TaxonNode]:
        for tree in self.trees():
            yield from tree.iter_preorder()

    def _resolve(self, path: Tuple[int, ...]) -> List[TaxonNode]:
        """Return every node along an index path, target last."""
        node = self.trees()[path[0]]
        nodes = [node]
        for child_index in path[1:]:
            node = node.children[child_index]
            nodes.append(node)
        return nodes

    def get_taxon(self, taxid: int) -> Optional[TaxonNode]:
        """Look up a node by taxid (first pre-order occurrence)."""
        path = self.taxon_index.get(taxid)
        if path is None:
            return None
        return self._resolve(path)[-1]

    def get_lineage(self, taxid: int) -> List[TaxonNode]:
        """
        Return the ancestors of a taxon, top-level node first.

        The taxon itself is not included. Unknown taxids give an empty list.
        """
        path = self.taxon_index.get(taxid)
        if path is None:
            return []
        return self._resolve(path)[:-1]

    @property
    def classified_reads(self) -> int:
        return self.root.clade_reads

    @property
    def unclassified_reads(self) -> int:
        return self.unclassified.clade_reads if self.unclassified else 0

    @property
    def total_reads(self) -> int:
        """Root and unclassified clade reads together."""
        return self.classified_reads + self.unclassified_reads

@dataclass
class ReportStats:
    """Counters and timings collected while parsing a report."""
    lines_read: int = 0
    lines_skipped: int = 0
    parse_seconds: float = 0.0
    build_seconds: float = 0.0

    @property
    def total_seconds(self) -> float:
        return self.parse_seconds + self.build_seconds

@dataclass
class TaxonInfo:
    """A taxon together with its lineage and flattened subtree."""
    taxon: TaxonNode
    parents: List[TaxonNode]
    children: List[TaxonNode]

@dataclass
class ReadSelection:
    """Read IDs selected from a classification log."""
    read_ids: Set[str] = field(default_factory=set)
    per_taxon: Optional[Dict[str, Set[str]]] = None
    lines_read: int = 0
    lines_skipped: int = 0
    lines_matched: int = 0

@dataclass
class FileExtractionStats:
    """Extraction counters for a single sequence file."""
    path: str
    records_seen: int = 0
    records_written: int = 0
    bytes_written: int = 0
    truncated: bool = False
    written_ids: Optional[Set[str]] = None

@dataclass
class ExtractionResult:
    """Extraction counters for a whole run."""
    files: List[FileExtractionStats] = field(default_factory=list)

    @property
    def records_seen(self) -> int:
        return sum(f.records_seen for f in self.files)

    @property
    def records_written(self) -> int:
        return sum(f.records_written for f in self.files)

    @property
    def bytes_written(self) -> int:
        return sum(f.bytes_written for f in self.files)

    def written_ids(self) -> Set[str]:
        """Union of the written read IDs of every file that collected them."""
        ids: Set[str] = set()
        for file_stats in self.files:
            if file_stats.written_ids:
                ids.update(file_stats.written_ids)
        return ids
