import os
import shutil
import tempfile
import unittest

from Bio import SeqIO

from krakenclip.core.extraction import extract_sequences
from krakenclip.core.synthetic import (
    DATA_TYPES, GeneratorParams, preset_params, generate_report, generate_reads
)
from krakenclip.io.parsers import parse_kraken2_report, filter_classification_log
from krakenclip.models.errors import OutputError
from tests.test_hierarchy import sample_report

class TestPresets(unittest.TestCase):

    def test_known_presets(self):
        params = preset_params('deep', 500, seed=3)
        self.assertEqual(params.max_depth, 50)
        self.assertEqual(params.max_children, 3)
        self.assertEqual(params.num_lines, 500)
        self.assertEqual(params.seed, 3)

    def test_lines_triples_count(self):
        self.assertEqual(preset_params('lines', 100).num_lines, 300)

    def test_unknown_falls_back_to_balanced(self):
        with self.assertLogs('krakenclip.core.synthetic', level='WARNING'):
            params = preset_params('nonsense', 10)
        self.assertEqual(params.max_depth, DATA_TYPES['balanced']['max_depth'])

    def test_random_is_seeded(self):
        self.assertEqual(preset_params('random', 10, seed=5), preset_params('random', 10, seed=5))

class TestReportGenerator(unittest.TestCase):
    """Generated reports must parse back into consistent trees."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def generate(self, params):
        path = os.path.join(self.test_dir, "synthetic.kreport")
        lines = generate_report(params, path)
        report, stats = parse_kraken2_report(path)
        return lines, report, stats

    def test_generated_report_is_consistent(self):
        for data_type in ('balanced', 'deep', 'wide'):
            params = preset_params(data_type, 300, seed=11)
            params.max_fragments = 100_000
            lines, report, stats = self.generate(params)

            self.assertLessEqual(lines, 300)
            self.assertEqual(stats.lines_read, lines)
            self.assertEqual(stats.lines_skipped, 0)
            self.assertEqual(report.unclassified.clade_reads, 10_000)
            self.assertEqual(report.root.taxid, 1)

            seen = set()
            for node in report.iter_nodes():
                self.assertNotIn(node.taxid, seen)
                seen.add(node.taxid)
                self.assertEqual(node.clade_reads, node.direct_reads + sum(c.clade_reads for c in node.children))
                for child in node.children:
                    self.assertEqual(child.depth, node.depth + 1)
            self.assertEqual(report.total_reads, 100_000)

    def test_seed_is_reproducible(self):
        params = GeneratorParams(num_lines=50, max_depth=6, max_children=5, max_fragments=10_000, seed=2)
        first = os.path.join(self.test_dir, "a.kreport")
        second = os.path.join(self.test_dir, "b.kreport")
        generate_report(params, first)
        generate_report(params, second)
        with open(first) as a, open(second) as b:
            self.assertEqual(a.read(), b.read())

    def test_single_line_limit(self):
        params = GeneratorParams(num_lines=1, max_fragments=1000, seed=1)
        lines, report, _ = self.generate(params)
        self.assertEqual(lines, 2)
        self.assertEqual(report.root.children, [])
        self.assertEqual(report.root.direct_reads, 900)

class TestReadGenerator(unittest.TestCase):
    """Tests for synthetic logs and reads."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.report = sample_report()
        self.log_path = os.path.join(self.test_dir, "reads.kraken")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_fastq_reads_match_log(self):
        seq_path = os.path.join(self.test_dir, "reads.fastq")
        count = generate_reads(self.report, 40, self.log_path, seq_path, read_length=30, seed=4)
        self.assertEqual(count, 40)

        records = list(SeqIO.parse(seq_path, "fastq"))
        self.assertEqual(len(records), 40)
        self.assertTrue(all(len(r.seq) == 30 for r in records))
        self.assertTrue(all(20 <= q <= 40 for r in records for q in r.letter_annotations["phred_quality"]))

        with open(self.log_path) as handle:
            log_lines = [line.rstrip("\n").split("\t") for line in handle]
        self.assertEqual([fields[1] for fields in log_lines], [r.id for r in records])
        for fields in log_lines:
            self.assertEqual(fields[0], 'U' if fields[2] == '0' else 'C')
            self.assertIsNotNone(self.report.get_taxon(int(fields[2])))
            self.assertGreater(self.report.get_taxon(int(fields[2])).direct_reads, 0)

    def test_generated_reads_can_be_extracted(self):
        seq_path = os.path.join(self.test_dir, "reads.fasta")
        generate_reads(self.report, 60, self.log_path, seq_path, sequence_format='fasta', seed=9)
        selection = filter_classification_log(self.log_path, ["562"])
        out = os.path.join(self.test_dir, "ecoli.fasta")
        result = extract_sequences([seq_path], selection.read_ids, out)

        extracted = list(SeqIO.parse(out, "fasta"))
        self.assertEqual({r.id for r in extracted}, selection.read_ids)
        self.assertEqual(result.records_seen, 60)
        self.assertTrue(all(r.description.endswith("taxid=562") for r in extracted))

    def test_unknown_format_raises(self):
        with self.assertRaises(OutputError):
            generate_reads(self.report, 1, self.log_path, os.path.join(self.test_dir, "x"), sequence_format='sam')

if __name__ == '__main__':
    unittest.main()
