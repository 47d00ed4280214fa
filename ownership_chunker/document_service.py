"""
Document service adapters for storing, analyzing and merging documents.
"""

import io
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from . import config
from .data_models import StoredFile

logger = logging.getLogger(__name__)


class DocumentService(ABC):
    """
    Abstract base class for the external document-analysis service.

    The service offers three capabilities:
    1. Storing a file and returning an opaque identifier
    2. Analyzing a stored file with free-text instructions
    3. Merging a block of text under system-level instructions
    """

    @classmethod
    def create(cls, model_name: str = config.LMM_MODEL, api_key: str = None, **options: Any) -> "DocumentService":
        """
        Factory method to create a DocumentService for a model.

        Args:
            model_name: Model to use; names containing "gemini" select Gemini,
                anything else selects Anthropic
            api_key: API key for the provider
            **options: Extra keyword arguments for the concrete service

        Returns:
            DocumentService instance
        """
        if api_key is None:
            api_key = config.get_api_key(model_name)
        if config.is_gemini_model(model_name):
            return GeminiDocumentService(api_key=api_key, model_name=model_name, **options)
        return AnthropicDocumentService(api_key=api_key, model_name=model_name, **options)

    @abstractmethod
    async def store(self, content: bytes, filename: str, mime_type: str = config.PDF_MIME_TYPE) -> StoredFile:
        """
        Upload a file to the service.

        Args:
            content: File bytes
            filename: Name to register the file under
            mime_type: MIME type of the content

        Returns:
            StoredFile with the service's identifier
        """

    @abstractmethod
    async def analyze(self, file_id: str, instructions: str) -> str:
        """
        Run an analysis request against a stored file.

        Args:
            file_id: Identifier returned by ``store``
            instructions: Prompt text sent along with the file

        Returns:
            Raw response text
        """

    @abstractmethod
    async def merge(self, system_instructions: str, text: str) -> str:
        """
        Send one text blob under system-level instructions.

        Returns:
            Raw response text
        """


class AnthropicDocumentService(DocumentService):
    """
    Anthropic implementation using the Files API and the Messages API.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "claude-sonnet-4-5",
        extraction_max_tokens: int = config.EXTRACTION_MAX_TOKENS,
        consolidation_max_tokens: int = config.CONSOLIDATION_MAX_TOKENS,
        timeout: float = config.REQUEST_TIMEOUT,
        max_retries: int = config.MAX_RETRIES,
        client: Any = None,
    ):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key
            model_name: Claude model used for analysis and merging
            extraction_max_tokens: Token limit for per-chunk analysis
            consolidation_max_tokens: Token limit for the merge request
            timeout: Request timeout in seconds, passed to the client
            max_retries: SDK-level retries; 0 so failures surface immediately
            client: Pre-built ``AsyncAnthropic`` client (mainly for tests)
        """
        self.model_name = model_name
        self.extraction_max_tokens = extraction_max_tokens
        self.consolidation_max_tokens = consolidation_max_tokens
        if client is None:
            import anthropic

            client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
            logger.info(f"Initialized Anthropic client with model: {self.model_name}")
        self.client = client

    async def store(self, content: bytes, filename: str, mime_type: str = config.PDF_MIME_TYPE) -> StoredFile:
        result = await self.client.beta.files.upload(
            file=(filename, content, mime_type),
            betas=[config.FILES_API_BETA],
        )
        return StoredFile(
            file_id=result.id,
            filename=getattr(result, "filename", filename),
            created_at=getattr(result, "created_at", None),
        )

    async def analyze(self, file_id: str, instructions: str) -> str:
        logger.info(f"Sending analysis request for file {file_id}")
        response = await self.client.beta.messages.create(
            model=self.model_name,
            max_tokens=self.extraction_max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instructions},
                        {"type": "document", "source": {"type": "file", "file_id": file_id}},
                    ],
                }
            ],
            betas=[config.FILES_API_BETA],
        )
        return self._response_text(response)

    async def merge(self, system_instructions: str, text: str) -> str:
        logger.info(f"Sending merge request with {len(text)} characters")
        response = await self.client.messages.create(
            model=self.model_name,
            max_tokens=self.consolidation_max_tokens,
            system=system_instructions,
            messages=[{"role": "user", "content": text}],
        )
        return self._response_text(response)

    @staticmethod
    def _response_text(response: Any) -> str:
        return "".join(
            block.text for block in (response.content or []) if getattr(block, "type", None) == "text"
        )


class GeminiDocumentService(DocumentService):
    """
    Google Gemini implementation using the File API.

    The SDK's file calls are blocking, so they run in a worker thread.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-pro",
        extraction_max_tokens: int = config.EXTRACTION_MAX_TOKENS,
        consolidation_max_tokens: int = config.CONSOLIDATION_MAX_TOKENS,
        temperature: float = 0.2,
        timeout: float = config.REQUEST_TIMEOUT,
        genai: Any = None,
    ):
        if genai is None:
            try:
                import google.generativeai as genai
            except ImportError:
                raise ImportError(
                    "google-generativeai package not installed. "
                    "Install it with: pip install google-generativeai"
                )

        genai.configure(api_key=api_key)
        self.genai = genai
        self.model_name = model_name
        self.temperature = temperature
        self.timeout = timeout
        self.extraction_max_tokens = extraction_max_tokens
        self.consolidation_max_tokens = consolidation_max_tokens
        self.model = genai.GenerativeModel(
            model_name=model_name,
            generation_config={
                "max_output_tokens": extraction_max_tokens,
                "temperature": temperature,
            },
        )
        logger.info(f"Initialized Gemini client with model: {self.model_name}")

    async def store(self, content: bytes, filename: str, mime_type: str = config.PDF_MIME_TYPE) -> StoredFile:
        uploaded = await asyncio.to_thread(
            self.genai.upload_file,
            io.BytesIO(content),
            mime_type=mime_type,
            display_name=filename,
        )
        return StoredFile(
            file_id=uploaded.name,
            filename=getattr(uploaded, "display_name", None) or filename,
            created_at=getattr(uploaded, "create_time", None),
        )

    async def analyze(self, file_id: str, instructions: str) -> str:
        logger.info(f"Sending analysis request for file {file_id}")
        stored = await asyncio.to_thread(self.genai.get_file, file_id)
        response = await self.model.generate_content_async(
            [instructions, stored],
            request_options={"timeout": self.timeout},
        )
        return response.text

    async def merge(self, system_instructions: str, text: str) -> str:
        logger.info(f"Sending merge request with {len(text)} characters")
        model = self.genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_instructions,
            generation_config={
                "max_output_tokens": self.consolidation_max_tokens,
                "temperature": self.temperature,
            },
        )
        response = await model.generate_content_async(text, request_options={"timeout": self.timeout})
        return response.text
