from unittest import TestCase

from curtaincore.index import IndexShard, build_index, merge_shards
from curtaincore.models import Row
from curtaincore.search import SearchEngine, SearchMode, SearchType, search, typeahead
from curtaincore.uniprot import UniprotStore


def make_rows():
    return [
        Row("P04637", {"Gene": "TP53"}),
        Row("Q00987", {"Gene": "MDM2"}),
        Row("Q00988", {"Gene": "MDM24"}),
        Row("P38398;P38398-2", {"Gene": "BRCA1"}),
        Row("X00001", {"Gene": "GENE1;GENE2"}),
        Row("X00002", {"Gene": "GENE1"}),
    ]


class TestIdentifierIndex(TestCase):
    def test_keys(self):
        index = build_index(make_rows(), gene_column="Gene")
        self.assertEqual(index.genes["TP53"], frozenset({"P04637"}))
        self.assertEqual(index.genes["GENE1"], frozenset({"X00001", "X00002"}))
        self.assertEqual(index.genes["GENE1;GENE2"], frozenset({"X00001"}))
        self.assertEqual(index.split_ids["P38398-2"], frozenset({"P38398;P38398-2"}))
        self.assertEqual(len(index), 6)

    def test_rebuild_is_idempotent(self):
        self.assertEqual(
            build_index(make_rows(), gene_column="Gene"),
            build_index(make_rows(), gene_column="Gene"),
        )

    def test_merge_shards(self):
        rows = make_rows()
        first, second = IndexShard(), IndexShard()
        for row in rows[:3]:
            first.add_row(row, "Gene")
        for row in rows[3:]:
            second.add_row(row, "Gene")
        self.assertEqual(merge_shards([first, second]).freeze(), build_index(rows, "Gene"))

    def test_accession_column(self):
        index = build_index([Row("P04637-S15", {"Acc": "P04637"})], accession_column="Acc")
        self.assertEqual(index.accessions["P04637"], frozenset({"P04637-S15"}))

    def test_uniprot_genes_for_rows_without_gene(self):
        store = UniprotStore(db={"P04637": {"Gene Names": "TP53;P53"}})
        index = build_index([Row("P04637", {})], uniprot=store)
        self.assertEqual(index.genes["P53"], frozenset({"P04637"}))
        self.assertEqual(index.display["P04637"], "TP53")

    def test_malformed_uniprot_record(self):
        store = UniprotStore(db={"A": {"genes": 5}}, acc_map={"A": 5})
        index = build_index([Row("A", {})], uniprot=store)
        self.assertEqual(len(index), 1)
        self.assertEqual(dict(index.genes), {})


class TestSearchEngine(TestCase):
    def setUp(self):
        self.engine = SearchEngine()
        self.engine.rebuild(make_rows(), gene_column="Gene")

    def test_exact(self):
        self.assertEqual(self.engine.search("tp53"), ["P04637"])
        self.assertEqual(self.engine.search("NOPE"), [])

    def test_partial(self):
        self.assertEqual(self.engine.search("MDM", SearchMode.PARTIAL), ["Q00987", "Q00988"])
        self.assertEqual(self.engine.search("M", SearchMode.PARTIAL), [])

    def test_batch_whole_line_first(self):
        results = self.engine.batch("GENE1;GENE2")
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].primary_ids, frozenset({"X00001"}))

    def test_batch_union_of_parts(self):
        results = self.engine.batch("TP53;MDM2\n\nbrca1")
        self.assertEqual(len(results), 2)
        self.assertEqual(results[0].primary_ids, frozenset({"P04637", "Q00987"}))
        self.assertEqual(results[0].matched_terms, ("TP53", "MDM2"))
        self.assertEqual(results[1].primary_ids, frozenset({"P38398;P38398-2"}))

    def test_batch_partial_fallback(self):
        results = self.engine.batch("BRCA;NOPE")
        self.assertEqual(results[0].primary_ids, frozenset({"P38398;P38398-2"}))
        self.assertEqual(results[0].matched_terms, ("BRCA",))

    def test_batch_mode(self):
        self.assertEqual(
            self.engine.search("TP53;MDM2", SearchMode.BATCH), ["P04637", "Q00987"]
        )

    def test_typeahead(self):
        suggestions = self.engine.typeahead("mdm2")
        self.assertEqual([s.text for s in suggestions], ["MDM2", "MDM24"])
        self.assertEqual([s.match_type for s in suggestions], ["exact", "partial"])
        self.assertEqual(suggestions[0].protein_count, 1)
        self.assertEqual(self.engine.typeahead("m"), [])
        self.assertEqual(len(self.engine.typeahead("MD", limit=1)), 1)

    def test_regex(self):
        self.assertEqual(self.engine.search("^tp", SearchMode.REGEX), ["P04637"])
        self.assertEqual(self.engine.search("[", SearchMode.REGEX), [])

    def test_primary_id_search(self):
        self.assertEqual(
            self.engine.search("P38398", search_type=SearchType.PRIMARY_ID), ["P38398;P38398-2"]
        )

    def test_accession_search_includes_ids(self):
        self.assertEqual(
            self.engine.search("Q00987", search_type=SearchType.ACCESSION_ID), ["Q00987"]
        )

    def test_gene_name_for(self):
        self.assertEqual(self.engine.gene_name_for("Q00987"), "MDM2")
        self.assertIsNone(self.engine.gene_name_for("missing"))

    def test_rebuild_swaps_index(self):
        old = self.engine.index
        self.engine.rebuild([Row("A1", {"Gene": "NEW"})], gene_column="Gene")
        self.assertEqual(self.engine.search("NEW"), ["A1"])
        self.assertEqual(old.genes["TP53"], frozenset({"P04637"}))

    def test_module_functions(self):
        index = build_index(make_rows(), gene_column="Gene")
        self.assertEqual(search(index, "TP53"), ["P04637"])
        self.assertEqual(typeahead(index, "TP")[0].text, "TP53")
