"""
Tests for the extraction fan-out and response parsing.
"""

import sys
import unittest
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from helpers import FakeDocumentService
from ownership_chunker.data_models import PageRange, UploadRecord
from ownership_chunker.errors import ExtractionError
from ownership_chunker.extraction import ExtractionFanout
from ownership_chunker.response_parser import ResponseParser, parse_json_response, strip_code_fences


def make_records(*file_ids):
    return [
        UploadRecord(index=i + 1, filename=f"part_{i + 1}.pdf", page_range=PageRange(i, i + 1), file_id=file_id)
        for i, file_id in enumerate(file_ids)
    ]


class TestResponseParsing(unittest.TestCase):
    """Tests for fence stripping and relationship parsing."""

    def test_fenced_and_plain_json_parse_identically(self):
        plain = '{"name": "A", "children": [{"name": "B", "attributes": {"equity": "60%"}}]}'
        fenced = f"```json\n{plain}\n```"

        self.assertEqual(parse_json_response(fenced), parse_json_response(plain))

    def test_strip_code_fences(self):
        self.assertEqual(strip_code_fences("  ```json\n[1]\n```  "), "[1]")
        self.assertEqual(strip_code_fences("```\n[]\n```"), "[]")

    def test_invalid_json(self):
        with self.assertRaises(ValueError):
            parse_json_response("Here is the structure you asked for")

    def test_parse_relationships(self):
        text = """```json
[
  {"parent": "A Holdings", "subsidiary": "B Ltd", "equity": "60%"},
  {"parent": "B Ltd", "subsidiary": "C GmbH"},
  {"parent": "", "subsidiary": "orphan"}
]
```"""
        relationships = ResponseParser().parse_relationships(text)

        self.assertEqual(len(relationships), 2)
        self.assertEqual(relationships[0].equity, "60%")
        self.assertEqual(relationships[1].equity, "not specified")

    def test_parse_relationships_requires_array(self):
        with self.assertRaises(ValueError):
            ResponseParser().parse_relationships('{"parent": "A"}')


class TestExtractionFanout(unittest.IsolatedAsyncioTestCase):
    """Tests for ExtractionFanout."""

    async def test_one_request_per_record(self):
        service = FakeDocumentService(payloads={"f1": '[{"parent": "A", "subsidiary": "B"}]', "f2": "[]"})
        fanout = ExtractionFanout(service, instructions="extract")

        results = await fanout.run(make_records("f1", "f2"))

        self.assertEqual(sorted(r.file_id for r in results), ["f1", "f2"])
        self.assertEqual(sorted(service.analyzed), ["f1", "f2"])
        texts = {r.file_id: r.text for r in results}
        self.assertEqual(texts["f1"], '[{"parent": "A", "subsidiary": "B"}]')

    async def test_results_arrive_in_completion_order(self):
        service = FakeDocumentService(analysis_delays={"slow": 0.05})
        fanout = ExtractionFanout(service, instructions="extract")

        results = await fanout.run(make_records("slow", "fast"))

        self.assertEqual([r.file_id for r in results], ["fast", "slow"])

    async def test_single_failure_fails_the_batch(self):
        service = FakeDocumentService(fail_analyses={"f2"}, analysis_delays={"f3": 1.0})
        fanout = ExtractionFanout(service, instructions="extract")

        with self.assertRaises(ExtractionError) as ctx:
            await fanout.run(make_records("f1", "f2", "f3"))

        self.assertEqual(ctx.exception.file_id, "f2")
        self.assertEqual(service.cancelled, ["f3"])

    async def test_malformed_payload_is_kept(self):
        service = FakeDocumentService(payloads={"f1": "no relationships here"})
        fanout = ExtractionFanout(service, instructions="extract")

        with self.assertLogs("ownership_chunker.extraction", level="WARNING"):
            results = await fanout.run(make_records("f1"))

        self.assertEqual(results[0].text, "no relationships here")

    async def test_default_instructions_are_loaded(self):
        fanout = ExtractionFanout(FakeDocumentService())
        self.assertIn("JSON array", fanout.instructions)

    async def test_no_records(self):
        self.assertEqual(await ExtractionFanout(FakeDocumentService(), "x").run([]), [])


if __name__ == "__main__":
    unittest.main()
