"""
Consolidation of per-chunk extraction results into one ownership tree.
"""

import json
import time
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from . import config
from .data_models import ConsolidatedTree
from .document_service import DocumentService
from .errors import ConsolidationError
from .response_parser import parse_json_response

logger = logging.getLogger(__name__)


class Consolidator:
    """
    Sends all extraction payloads in a single merge request and persists the
    resulting tree.

    Deduplication and conflict resolution are left to the merge service; this
    class only transports the payloads and validates the shape of the answer.
    """

    def __init__(
        self,
        service: DocumentService,
        output_dir: Union[str, Path] = config.OUTPUT_DIR,
        system_instructions: Optional[str] = None,
    ):
        """
        Initialize the consolidator.

        Args:
            service: Document service providing the merge capability
            output_dir: Directory that receives ``output_<millis>.json`` files
            system_instructions: Merge instructions (defaults to the bundled prompt)
        """
        self.service = service
        self.output_dir = Path(output_dir)
        self.system_instructions = system_instructions or config.load_prompt(config.CONSOLIDATION_PROMPT_PATH)

    async def consolidate(self, payloads: Sequence[str]) -> ConsolidatedTree:
        """
        Merge extraction payloads into one tree.

        Args:
            payloads: Raw per-chunk response texts

        Returns:
            The validated ConsolidatedTree

        Raises:
            ConsolidationError: if the merge response is not a valid tree;
                ``raw_text`` holds the uncleaned response
        """
        combined = "\n".join(payloads)
        logger.info(f"Consolidating {len(payloads)} extraction results")
        raw_text = await self.service.merge(self.system_instructions, combined)

        try:
            tree = ConsolidatedTree.from_dict(parse_json_response(raw_text))
        except ValueError as e:
            logger.error(f"Error parsing consolidation response: {str(e)}")
            logger.error(f"Raw response:\n{raw_text}")
            raise ConsolidationError(f"Merge response is not a valid ownership tree: {str(e)}", raw_text=raw_text) from e

        logger.info(f"Consolidated tree rooted at '{tree.name}' with {tree.count_nodes()} nodes")
        return tree

    def save(self, tree: ConsolidatedTree) -> Path:
        """
        Write the tree to a new ``output_<epoch millis>.json`` file.

        Existing files are never overwritten.

        Returns:
            Path of the written file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        millis = int(time.time() * 1000)
        while True:
            path = self.output_dir / f"output_{millis}.json"
            try:
                with open(path, "x", encoding="utf-8") as f:
                    json.dump(tree.to_dict(), f, indent=2, ensure_ascii=False)
                break
            except FileExistsError:
                millis += 1

        logger.info(f"JSON saved to {path}")
        return path
