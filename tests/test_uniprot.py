from unittest import TestCase

from curtaincore.uniprot import (
    FeatureType,
    ParsedModification,
    ProteinDomain,
    UniprotStore,
    available_mod_types,
    extract_domains,
    extract_gene_name,
    extract_isoforms,
    extract_organism,
    extract_protein_name,
    extract_sequence,
    gene_names_of,
    normalize_record,
    parse_modifications,
    parse_uniprot_features,
)

MOD_RES = 'MOD_RES 15; /note="Phosphoserine"; /evidence="ECO:0000244"; MOD_RES 20; /note="N6-acetyllysine"'


class TestParseFeatures(TestCase):
    def test_flattened_string(self):
        features = parse_uniprot_features({"Modified residue": MOD_RES})
        self.assertEqual(
            [(f.start, f.end, f.description) for f in features],
            [(15, 15, "Phosphoserine"), (20, 20, "N6-acetyllysine")],
        )
        self.assertTrue(all(f.feature_type is FeatureType.MODIFIED_RESIDUE for f in features))

    def test_both_encodings_agree(self):
        structured = [
            {"position": 15.0, "modType": "Phosphoserine", "residue": "S"},
            {"position": "20", "modType": "N6-acetyllysine"},
            {"position": None, "modType": "Skipped"},
        ]
        self.assertEqual(
            parse_uniprot_features({"Modified residue": structured}),
            parse_uniprot_features({"Modified residue": MOD_RES}),
        )

    def test_prefixed_position(self):
        features = parse_uniprot_features({"Modified residue": 'MOD_RES P12345:7; /note="Phosphothreonine"'})
        self.assertEqual(features[0].start, 7)

    def test_feature_array(self):
        record = {
            "features": [
                {
                    "type": "Domain",
                    "location": {"start": {"value": 10}, "end": {"value": 50}},
                    "description": "SH2",
                }
            ]
        }
        features = parse_uniprot_features(record)
        self.assertEqual(features[0].feature_type, FeatureType.DOMAIN)
        self.assertEqual(features[0].id, "Domain_10_50")

    def test_malformed(self):
        self.assertEqual(parse_uniprot_features(None), [])
        self.assertEqual(parse_uniprot_features({"Modified residue": 42}), [])
        self.assertEqual(parse_uniprot_features({"features": "bad", "comments": [1, 2]}), [])

    def test_feature_type_from_string(self):
        self.assertIs(FeatureType.from_string("Phosphoserine"), FeatureType.MODIFIED_RESIDUE)
        self.assertIs(FeatureType.from_string("Transmembrane helix"), FeatureType.TRANSMEMBRANE)
        self.assertIs(FeatureType.from_string("Something"), FeatureType.OTHER)


class TestModifications(TestCase):
    def test_string_form_uses_sequence(self):
        record = {"Modified residue": 'MOD_RES 2; /note="Phosphoserine"', "Sequence": "MSK"}
        self.assertEqual(parse_modifications(record), [ParsedModification(2, "S", "Phosphoserine")])

    def test_list_form(self):
        record = {"Modified residue": [{"position": 3, "modType": "Phosphothreonine"}], "Sequence": "MKT"}
        self.assertEqual(parse_modifications(record), [ParsedModification(3, "T", "Phosphothreonine")])

    def test_feature_form(self):
        record = {
            "features": [
                {
                    "type": "Modified residue",
                    "location": {"start": {"value": 3}, "end": {"value": 3}},
                    "description": "Phosphothreonine",
                }
            ],
            "sequence": {"value": "MKT"},
        }
        modifications = parse_modifications(record)
        self.assertEqual(modifications, [ParsedModification(3, "T", "Phosphorylation")])
        self.assertEqual(available_mod_types(modifications), ["Phosphorylation"])


class TestExtractors(TestCase):
    def test_domains(self):
        record = {"Domain [FT]": 'DOMAIN 10..50; /note="SH2"; /evidence="ECO:1"; DOMAIN 60..120; /note="Kinase"'}
        self.assertEqual(
            extract_domains(record),
            [ProteinDomain("SH2", 10, 50, "SH2"), ProteinDomain("Kinase", 60, 120, "Kinase")],
        )

    def test_parsed_domains(self):
        record = {"Domain [FT]": [{"start": 1, "end": 9, "name": "N-term"}]}
        self.assertEqual(extract_domains(record), [ProteinDomain("N-term", 1, 9, "N-term")])

    def test_gene_name(self):
        self.assertEqual(extract_gene_name({"Gene Names": "TP53 P53"}), "TP53")
        self.assertEqual(extract_gene_name({"genes": [{"geneName": {"value": "MDM2"}}]}), "MDM2")
        self.assertIsNone(extract_gene_name({}))

    def test_sequence_protein_and_organism(self):
        record = {
            "sequence": {"value": "MKT"},
            "proteinDescription": {"recommendedName": {"fullName": {"value": "Cellular tumor antigen p53"}}},
            "organism": {"scientificName": "Homo sapiens"},
        }
        self.assertEqual(extract_sequence(record), "MKT")
        self.assertEqual(extract_protein_name(record), "Cellular tumor antigen p53")
        self.assertEqual(extract_organism(record), "Homo sapiens")
        self.assertIsNone(extract_sequence("MKT"))

    def test_isoforms(self):
        record = {
            "Alternative products (isoforms)": "ALTERNATIVE PRODUCTS: Event=Alternative splicing; "
            "Name=1; IsoId=P04637-1; Sequence=Displayed; Name=2; IsoId=P04637-2, P04637-3; Sequence=VSP_1;"
        }
        self.assertEqual(extract_isoforms(record), ["P04637-1", "P04637-2", "P04637-3"])

    def test_malformed_nested_shapes(self):
        self.assertIsNone(extract_protein_name({"proteinDescription": {"recommendedName": "X"}}))
        self.assertEqual(extract_isoforms({"comments": 5}), [])
        self.assertEqual(
            extract_isoforms({"comments": [{"type": "ALTERNATIVE PRODUCTS", "isoforms": "P1"}]}), []
        )
        self.assertEqual(gene_names_of({"genes": 5}), [])
        self.assertEqual(gene_names_of({"genes": [5, {"geneName": {"value": "MDM2"}}]}), ["MDM2"])
        self.assertIsNone(extract_gene_name({"genes": {"geneName": "MDM2"}}))


class TestNormalizeRecord(TestCase):
    def test_normalize(self):
        record = normalize_record(
            {
                "Entry": "P04637",
                "From": "P04637",
                "Gene Names": "tp53 p53",
                "Subcellular location [CC]": "SUBCELLULAR LOCATION: Cytoplasm {ECO:0000269}. Nucleus {ECO:1}. Note=Something",
                "Domain [FT]": 'DOMAIN 10..50; /note="SH2"',
                "Mutagenesis": 'MUTAGEN 15; /note="S->A: Loss"',
                "Sequence": "MSK",
                "Modified residue": 'MOD_RES 2; /note="Phosphoserine"',
                "Length": None,
            }
        )
        self.assertEqual(record["Gene Names"], "TP53;P53")
        self.assertEqual(record["Subcellular location [CC]"], ["Cytoplasm", "Nucleus"])
        self.assertEqual(record["Domain [FT]"], [{"start": 10, "end": 50, "name": "SH2"}])
        self.assertEqual(record["Mutagenesis"], [{"position": "15", "note": "S->A: Loss"}])
        self.assertEqual(
            record["Modified residue"], [{"position": 2, "modType": "Phosphoserine", "residue": "S"}]
        )
        self.assertEqual(record["_id"], "P04637")
        self.assertEqual(record["Length"], "")


class TestUniprotStore(TestCase):
    def setUp(self):
        self.store = UniprotStore.from_payload(
            {
                "db": {"dataType": "Map", "value": [["P04637", {"Gene Names": "TP53"}]]},
                "accMap": {"dataType": "Map", "value": [["P04637-2", ["P04637"]]]},
                "dataMap": {"dataType": "Map", "value": [["P04637", "P04637"]]},
                "organism": "9606",
            }
        )

    def test_direct(self):
        self.assertEqual(self.store.get_record("P04637"), {"Gene Names": "TP53"})

    def test_through_acc_map(self):
        self.assertEqual(self.store.get_record("P04637-2")["Gene Names"], "TP53")

    def test_split_primary_id(self):
        self.assertEqual(self.store.get_record("Q99999;P04637")["Gene Names"], "TP53")

    def test_missing(self):
        self.assertIsNone(self.store.get_record("Q99999"))
        self.assertIsNone(self.store.get_record(""))
        self.assertEqual(len(UniprotStore.from_payload(None)), 0)

    def test_malformed_acc_map(self):
        store = UniprotStore(db={"A": {"x": 1}}, acc_map={"B": 5, "C": [["A"]]})
        self.assertIsNone(store.get_record("B"))
        self.assertIsNone(store.get_record("C"))

    def test_values_are_plain(self):
        store = UniprotStore(db={"A": {"Length": 393, "x": "a"}, "B": {"x": "b"}})
        length = store.get_record("A")["Length"]
        self.assertEqual(length, 393)
        self.assertIs(type(length), int)
        self.assertNotIn("Length", store.get_record("B"))
