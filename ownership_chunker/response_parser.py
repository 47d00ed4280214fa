import json
import logging
from typing import Any, List

from .data_models import Relationship

logger = logging.getLogger(__name__)

FENCE_TOKENS = ("```json", "```")


def strip_code_fences(text: str) -> str:
    """Remove every ```json / ``` token and surrounding whitespace."""
    for token in FENCE_TOKENS:
        text = text.replace(token, "")
    return text.strip()


def parse_json_response(text: str) -> Any:
    """
    Parse a model response that should contain JSON, possibly fenced.

    Raises:
        ValueError: if the cleaned text is not valid JSON
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"Response is not valid JSON: {str(e)}") from e


class ResponseParser:
    """
    Parses raw per-chunk extraction text into relationships.
    """

    def parse_relationships(self, text: str) -> List[Relationship]:
        """
        Parse an extraction response into a list of Relationship objects.

        Args:
            text: Raw response text from the analysis request

        Returns:
            Parsed relationships; entries without a parent or subsidiary are skipped

        Raises:
            ValueError: if the response is not a JSON array
        """
        data = parse_json_response(text)
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

        relationships = []
        for item in data:
            if not isinstance(item, dict) or not item.get("parent") or not item.get("subsidiary"):
                logger.warning(f"Skipping malformed relationship entry: {item!r}")
                continue
            relationships.append(
                Relationship(
                    parent=str(item["parent"]),
                    subsidiary=str(item["subsidiary"]),
                    equity=str(item.get("equity") or "not specified"),
                )
            )

        logger.info(f"Parsed {len(relationships)} relationships from response")
        return relationships
