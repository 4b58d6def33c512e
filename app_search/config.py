"""Runtime settings, read once from the environment (and an optional .env)."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env", override=False)

CATALOG_PATH = os.getenv("APP_SEARCH_CATALOG", "data/apps.csv")

MODEL_DIR       = os.getenv("APP_SEARCH_MODEL_DIR", "multi-qa-mpnet-base-dot-v1-onnx")
ONNX_MODEL_PATH = os.getenv("APP_SEARCH_ONNX_MODEL", str(Path(MODEL_DIR) / "model.onnx"))
MAX_LENGTH      = int(os.getenv("APP_SEARCH_MAX_LENGTH", "512"))

# number of results a search returns when the caller does not ask for a count
K_DEFAULT = int(os.getenv("APP_SEARCH_TOP_K", "9"))

LOG_LEVEL = os.getenv("APP_SEARCH_LOG_LEVEL", "INFO")

# joins name, description, category and tags into the text that gets embedded
TEXT_SEPARATOR = " "
