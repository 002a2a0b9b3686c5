import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent

# ---- LLM (OpenAI-compatible /chat/completions) ----
# Empty base URL disables the LLM tier; pattern extraction is used instead.
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "")
LLM_MODEL = os.getenv("LLM_MODEL", "mistral-7b-instruct")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.0"))
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "60"))

# ---- Storage ----
STORAGE_DIR = os.getenv("STORAGE_DIR", "./storage")
ARTIFACTS_DIR = os.getenv("ARTIFACTS_DIR", "./artifacts")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{STORAGE_DIR}/rbac_chat.db")

# ---- Schema registry ----
REGISTRY_PATH = os.getenv(
    "REGISTRY_PATH",
    str(PACKAGE_DIR / "registry" / "default_registry.yaml"),
)
SCHEMA_VERSION = os.getenv("SCHEMA_VERSION", "1.2")

# ---- API ----
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if o.strip()
]
API_VERSION = "1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
