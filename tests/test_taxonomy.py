import unittest

from krakenclip.core.hierarchy import build_hierarchy, build_report
from krakenclip.core.taxonomy import (
    expand_taxids, find_taxon_info, search_taxa, filter_taxa, summarize_report
)
from krakenclip.models.config import ConfigError
from krakenclip.models.errors import TaxonomyError
from tests.test_hierarchy import make_node, sample_report

class TestExpandTaxids(unittest.TestCase):
    """Tests for descendant/ancestor closure of taxid sets."""

    def setUp(self):
        self.report = sample_report()

    def test_no_flags_returns_seeds(self):
        self.assertEqual(expand_taxids(self.report, ["562", 2, "017"]), {"562", "2", "17"})
        self.assertEqual(expand_taxids(None, ["562"]), {"562"})

    def test_include_parents(self):
        expanded = expand_taxids(self.report, ["562"], include_parents=True)
        self.assertEqual(expanded, {"562", "1236", "1224", "2", "131567", "1"})

    def test_include_parents_simple_path(self):
        report = build_report(build_hierarchy([make_node(1, 0), make_node(5, 1), make_node(17, 2), make_node(18, 1)]))
        self.assertEqual(expand_taxids(report, {17}, include_parents=True), {"17", "5", "1"})

    def test_include_children(self):
        expanded = expand_taxids(self.report, ["1224", "2157"], include_children=True)
        self.assertEqual(expanded, {"1224", "1236", "562", "2157"})

    def test_include_both(self):
        expanded = expand_taxids(self.report, ["1239"], include_children=True, include_parents=True)
        self.assertEqual(expanded, {"1239", "1423", "2", "131567", "1"})

    def test_absent_seed_is_ignored(self):
        expanded = expand_taxids(self.report, ["424242", "562"], include_children=True, include_parents=True)
        self.assertIn("424242", expanded)
        self.assertIn("1236", expanded)

    def test_flags_without_report_raise(self):
        with self.assertRaises(ConfigError):
            expand_taxids(None, ["562"], include_children=True)
        with self.assertRaises(ConfigError):
            expand_taxids(None, ["562"], include_parents=True)

    def test_children_idempotent(self):
        for seeds in (["2"], ["1224", "10239"], ["1"], ["0", "562"]):
            once = expand_taxids(self.report, seeds, include_children=True)
            twice = expand_taxids(self.report, once, include_children=True)
            self.assertEqual(once, twice)

    def test_monotonic(self):
        seed_sets = [set(), {"562"}, {"562", "1239"}, {"562", "1239", "10239"}, {"562", "1239", "10239", "2"}]
        for flags in ((True, False), (False, True), (True, True)):
            previous = set()
            for seeds in seed_sets:
                expanded = expand_taxids(self.report, seeds, *flags)
                self.assertTrue(previous <= expanded)
                previous = expanded

    def test_duplicate_taxids(self):
        nodes = [
            make_node(1, 0),
            make_node(10, 1),
            make_node(99, 2),
            make_node(100, 3),
            make_node(20, 1),
            make_node(99, 2),
            make_node(200, 3),
        ]
        report = build_report(build_hierarchy(nodes))
        self.assertEqual(expand_taxids(report, ["99"], include_children=True), {"99", "100", "200"})
        self.assertEqual(expand_taxids(report, ["99"], include_parents=True), {"99", "10", "1"})

    def test_unclassified_seed(self):
        self.assertEqual(expand_taxids(self.report, ["0"], include_children=True, include_parents=True), {"0"})

class TestReportQueries(unittest.TestCase):
    """Tests for taxon lookup, search, filter and summary."""

    def setUp(self):
        self.report = sample_report()

    def test_find_taxon_info(self):
        info = find_taxon_info(self.report, 1224)
        self.assertEqual(info.taxon.name, "Pseudomonadota")
        self.assertEqual([p.taxid for p in info.parents], [1, 131567, 2])
        self.assertEqual([c.taxid for c in info.children], [1236, 562])
        self.assertIsNone(find_taxon_info(self.report, 31337))

    def test_search_taxa(self):
        names = [n.name for n in search_taxa(self.report, "BAC")]
        self.assertEqual(names, ["Bacteria", "Gammaproteobacteria", "Bacillota", "Bacillus subtilis"])
        self.assertEqual(search_taxa(self.report, "zebra"), [])

    def test_filter_taxa(self):
        species = filter_taxa(self.report, "rank=S")
        self.assertEqual([n.taxid for n in species], [562, 1423])
        big = filter_taxa(self.report, "rank=P, percentage>=30")
        self.assertEqual([n.taxid for n in big], [1224])
        named = filter_taxa(self.report, "name~coli,clade_reads<1000")
        self.assertEqual([n.taxid for n in named], [562])
        self.assertEqual([n.taxid for n in filter_taxa(self.report, "depth>4")], [562])

    def test_bad_filter_raises(self):
        for expression in ("", "colour=red", "rank>S", "percentage~1", "percentage>=lots", "???"):
            with self.assertRaises(TaxonomyError):
                filter_taxa(self.report, expression)

    def test_summarize_report(self):
        summary = summarize_report(self.report)
        self.assertEqual(summary['total_taxa'], 10)
        self.assertEqual(summary['max_depth'], 5)
        self.assertEqual(summary['rank_counts']['D'], 3)
        self.assertEqual(summary['rank_counts']['S'], 2)
        self.assertEqual(summary['classified_reads'], 900)
        self.assertEqual(summary['unclassified_reads'], 100)
        self.assertAlmostEqual(summary['classified_percentage'], 90.0)

if __name__ == '__main__':
    unittest.main()
