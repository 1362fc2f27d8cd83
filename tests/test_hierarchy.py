import random
import unittest

from krakenclip.core.hierarchy import build_hierarchy, build_taxon_index, build_report
from krakenclip.io.parsers import parse_line
from krakenclip.models.taxonomic import TaxonNode
from tests.fixtures import SAMPLE_REPORT_LINES

def make_node(taxid, depth, name=None, rank="S"):
    return TaxonNode(
        depth=depth,
        percentage=0.0,
        clade_reads=0,
        direct_reads=0,
        rank=rank,
        taxid=taxid,
        name=name or f"taxon_{taxid}"
    )

def flatten(forest):
    return [(node.taxid, node.depth) for tree in forest for node in tree.iter_preorder()]

def sample_report():
    return build_report(build_hierarchy(parse_line(line) for line in SAMPLE_REPORT_LINES))

class TestBuildHierarchy(unittest.TestCase):
    """Tests for the stack-based tree builder."""

    def test_linear_chain(self):
        forest = build_hierarchy([make_node(1, 0), make_node(2, 1), make_node(3, 2)])
        self.assertEqual(len(forest), 1)
        self.assertEqual(forest[0].taxid, 1)
        self.assertEqual([c.taxid for c in forest[0].children], [2])
        self.assertEqual([c.taxid for c in forest[0].children[0].children], [3])
        self.assertEqual(forest[0].children[0].children[0].children, [])

    def test_empty_input(self):
        self.assertEqual(build_hierarchy([]), [])

    def test_siblings_and_multi_level_ascent(self):
        nodes = [
            make_node(1, 0),
            make_node(2, 1),
            make_node(3, 2),
            make_node(4, 3),
            make_node(5, 1),
            make_node(6, 2),
            make_node(7, 2),
            make_node(8, 0),
        ]
        forest = build_hierarchy(nodes)
        self.assertEqual([t.taxid for t in forest], [1, 8])
        root = forest[0]
        self.assertEqual([c.taxid for c in root.children], [2, 5])
        self.assertEqual([c.taxid for c in root.children[1].children], [6, 7])
        self.assertEqual(root.children[0].children[0].children[0].taxid, 4)

    def test_depth_invariant(self):
        report = sample_report()
        for tree in report.trees():
            for node in tree.iter_preorder():
                for child in node.children:
                    self.assertEqual(child.depth, node.depth + 1)

    def test_preorder_round_trip(self):
        rng = random.Random(7)
        for _ in range(20):
            sequence = [(1, 0)]
            for taxid in range(2, 200):
                depth = rng.randint(0, sequence[-1][1] + 1)
                sequence.append((taxid, depth))
            forest = build_hierarchy(make_node(t, d) for t, d in sequence)
            self.assertEqual(flatten(forest), sequence)
            for tree in forest:
                for node in tree.iter_preorder():
                    for child in node.children:
                        self.assertEqual(child.depth, node.depth + 1)

class TestTaxonIndex(unittest.TestCase):
    """Tests for the taxid index and report assembly."""

    def test_lookup_and_lineage(self):
        report = sample_report()
        ecoli = report.get_taxon(562)
        self.assertEqual(ecoli.name, "Escherichia coli")
        self.assertEqual(ecoli.depth, 5)
        self.assertEqual([n.taxid for n in report.get_lineage(562)], [1, 131567, 2, 1224, 1236])
        self.assertEqual(report.get_lineage(1), [])
        self.assertIsNone(report.get_taxon(999999))
        self.assertEqual(report.get_lineage(999999), [])

    def test_unclassified_is_first_tree(self):
        report = sample_report()
        self.assertEqual(report.taxon_index[0], (0,))
        self.assertEqual(report.taxon_index[1], (1,))
        self.assertIs(report.get_taxon(0), report.unclassified)

    def test_duplicate_taxid_keeps_first_occurrence(self):
        nodes = [
            make_node(1, 0, "root"),
            make_node(10, 1, "first"),
            make_node(99, 2, "dup-a"),
            make_node(20, 1, "second"),
            make_node(99, 2, "dup-b"),
        ]
        report = build_report(build_hierarchy(nodes))
        self.assertEqual(report.get_taxon(99).name, "dup-a")
        self.assertEqual([n.taxid for n in report.get_lineage(99)], [1, 10])

    def test_build_taxon_index_paths(self):
        forest = build_hierarchy([make_node(1, 0), make_node(2, 1), make_node(3, 1), make_node(4, 2)])
        index = build_taxon_index(forest)
        self.assertEqual(index, {1: (0,), 2: (0, 0), 3: (0, 1), 4: (0, 1, 0)})

    def test_extra_top_level_entries_are_dropped(self):
        forest = build_hierarchy([make_node(1, 0, "root"), make_node(2, 1), make_node(50, 0, "stray")])
        report = build_report(forest)
        self.assertEqual(report.root.taxid, 1)
        self.assertIsNone(report.unclassified)
        self.assertIsNone(report.get_taxon(50))

    def test_unclassified_needs_exact_name(self):
        forest = build_hierarchy([make_node(0, 0, "Unclassified"), make_node(1, 0, "root")])
        report = build_report(forest)
        self.assertIsNone(report.unclassified)
        self.assertEqual(report.root.name, "Unclassified")

if __name__ == '__main__':
    unittest.main()
