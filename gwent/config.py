"""
Configuration - Environment settings read once at import time.

    GWENT_ENV                   development | production (default development)
    GWENT_LOG_LEVEL             logging level name for the CLI (default WARNING)
    GWENT_MAX_LOOP_ITERATIONS   bound on while/for iterations in one loop (default 1000)
    GWENT_ALLOWED_ORIGINS       comma-separated CORS origins for the API (default *)
    GWENT_CARD_FILE             card file used when the CLI is given none
    GWENT_CARD_DIR              directory the API may read card files from (default .)
"""

import os

# Environment configuration
GWENT_ENV = os.getenv("GWENT_ENV", "development")
GWENT_LOG_LEVEL = os.getenv("GWENT_LOG_LEVEL", "WARNING").upper()
MAX_LOOP_ITERATIONS = int(os.getenv("GWENT_MAX_LOOP_ITERATIONS", "1000"))
ALLOWED_ORIGINS = os.getenv("GWENT_ALLOWED_ORIGINS", "*").split(",")
GWENT_CARD_FILE = os.getenv("GWENT_CARD_FILE", None)
GWENT_CARD_DIR = os.getenv("GWENT_CARD_DIR", ".")
