import os
from dotenv import load_dotenv

load_dotenv()

# Config
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./feedback.db")
ORIGINS = [o.strip() for o in os.getenv("ORIGINS", "http://localhost:5173").split(",") if o.strip()]
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
