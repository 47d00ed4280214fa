import os
from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

# Document service configuration
LMM_MODEL = os.getenv("LMM_MODEL", "claude-sonnet-4-5")
EXTRACTION_MAX_TOKENS = int(os.getenv("EXTRACTION_MAX_TOKENS", "8192"))
CONSOLIDATION_MAX_TOKENS = int(os.getenv("CONSOLIDATION_MAX_TOKENS", "50000"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", str(30 * 60)))  # seconds
# The pipeline never retries on its own; a failed request fails the run
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "0"))
FILES_API_BETA = "files-api-2025-04-14"

# PDF splitting configuration
PAGES_PER_FILE = int(os.getenv("PAGES_PER_FILE", "50"))
PDF_MIME_TYPE = "application/pdf"

# Paths
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")
PROMPTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts")
EXTRACTION_PROMPT_PATH = os.path.join(PROMPTS_DIR, "extraction_prompt.txt")
CONSOLIDATION_PROMPT_PATH = os.path.join(PROMPTS_DIR, "consolidation_prompt.txt")


def is_gemini_model(model_name: str) -> bool:
    return "gemini" in model_name.lower()


def get_api_key(model_name: str = LMM_MODEL) -> str:
    """
    Return the API key for the service behind ``model_name``.

    Raises:
        ConfigurationError: if the key is missing or empty
    """
    if is_gemini_model(model_name):
        env_name = "GOOGLE_API_KEY"
    else:
        env_name = "ANTHROPIC_API_KEY"
    api_key = os.getenv(env_name)

    if not api_key:
        raise ConfigurationError(
            f"{env_name} is not set. Please set it as an environment variable "
            "or add it to your .env file."
        )
    return api_key


def mask_api_key(api_key: str) -> str:
    """Keep only a short prefix of a key for log output."""
    return api_key[:8] + "..." if len(api_key) > 8 else "***"


def load_prompt(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
