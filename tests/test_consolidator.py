"""
Tests for consolidating extraction results into an ownership tree.
"""

import json
import sys
import unittest
import tempfile
from pathlib import Path
from unittest.mock import patch

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from helpers import FakeDocumentService
from ownership_chunker.consolidator import Consolidator
from ownership_chunker.data_models import ConsolidatedTree
from ownership_chunker.errors import ConsolidationError

TREE_JSON = '{"name": "A", "children": [{"name": "B", "attributes": {"equity": "60%"}}]}'


class TestConsolidator(unittest.IsolatedAsyncioTestCase):
    """Tests for Consolidator."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    async def test_conflicting_payloads_use_one_merge_call(self):
        service = FakeDocumentService(merge_response=TREE_JSON)
        consolidator = Consolidator(service, self.output_dir, system_instructions="merge")
        payloads = [
            '[{"parent":"A","subsidiary":"B","equity":"60%"}]',
            '[{"parent":"A","subsidiary":"B","equity":"not specified"}]',
        ]

        await consolidator.consolidate(payloads)

        self.assertEqual(len(service.merge_calls), 1)
        system, text = service.merge_calls[0]
        self.assertEqual(system, "merge")
        self.assertEqual(text, "\n".join(payloads))

    async def test_fenced_response_matches_plain(self):
        plain = Consolidator(FakeDocumentService(merge_response=TREE_JSON), self.output_dir, "merge")
        fenced = Consolidator(
            FakeDocumentService(merge_response=f"```json\n{TREE_JSON}\n```"), self.output_dir, "merge"
        )

        self.assertEqual(await plain.consolidate(["[]"]), await fenced.consolidate(["[]"]))

    async def test_tree_shape(self):
        tree = await Consolidator(FakeDocumentService(merge_response=TREE_JSON), self.output_dir, "m").consolidate([])

        self.assertEqual(tree.name, "A")
        self.assertEqual(tree.children[0].name, "B")
        self.assertEqual(tree.children[0].attributes, {"equity": "60%"})
        self.assertIsNone(tree.children[0].children)

    async def test_unparseable_response_keeps_raw_text(self):
        raw = "```json\nSorry, I could not find any companies.\n```"
        consolidator = Consolidator(FakeDocumentService(merge_response=raw), self.output_dir, "merge")

        with self.assertLogs("ownership_chunker.consolidator", level="ERROR") as logs:
            with self.assertRaises(ConsolidationError) as ctx:
                await consolidator.consolidate(["[]"])

        self.assertEqual(ctx.exception.raw_text, raw)
        self.assertTrue(any("Sorry, I could not find" in line for line in logs.output))

    async def test_wrong_shape_is_rejected(self):
        consolidator = Consolidator(FakeDocumentService(merge_response='[{"name": "A"}]'), self.output_dir, "m")

        with self.assertRaises(ConsolidationError):
            await consolidator.consolidate(["[]"])

    def test_save_writes_timestamped_file(self):
        consolidator = Consolidator(FakeDocumentService(), self.output_dir, "merge")
        tree = ConsolidatedTree.from_dict(json.loads(TREE_JSON))

        with patch("ownership_chunker.consolidator.time.time", return_value=1700000000.5):
            path = consolidator.save(tree)

        self.assertEqual(path.name, "output_1700000000500.json")
        self.assertEqual(json.loads(path.read_text(encoding="utf-8")), json.loads(TREE_JSON))

    def test_save_never_overwrites(self):
        consolidator = Consolidator(FakeDocumentService(), self.output_dir, "merge")
        tree = ConsolidatedTree(name="A")

        with patch("ownership_chunker.consolidator.time.time", return_value=1700000000.0):
            first = consolidator.save(tree)
            second = consolidator.save(ConsolidatedTree(name="Other"))

        self.assertNotEqual(first, second)
        self.assertEqual(json.loads(first.read_text(encoding="utf-8")), {"name": "A"})
        self.assertEqual(second.name, "output_1700000000001.json")


class TestConsolidatedTree(unittest.TestCase):
    """Tests for ConsolidatedTree validation."""

    def test_round_trip_keeps_optional_fields_absent(self):
        data = {"name": "Root", "children": [{"name": "Leaf"}]}
        self.assertEqual(ConsolidatedTree.from_dict(data).to_dict(), data)

    def test_numeric_attributes_become_strings(self):
        tree = ConsolidatedTree.from_dict({"name": "X", "attributes": {"equity": 51}})
        self.assertEqual(tree.attributes, {"equity": "51"})

    def test_invalid_nodes(self):
        for data in ([], {"children": []}, {"name": ""}, {"name": "A", "children": {}},
                     {"name": "A", "attributes": []}, {"name": "A", "children": [{"name": 3}]}):
            with self.assertRaises(ValueError):
                ConsolidatedTree.from_dict(data)

    def test_count_nodes(self):
        tree = ConsolidatedTree.from_dict(json.loads(TREE_JSON))
        self.assertEqual(tree.count_nodes(), 2)


if __name__ == "__main__":
    unittest.main()
