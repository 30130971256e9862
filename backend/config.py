"""Configuration management for ShelfScope backend."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Supabase (user reading/listening lists)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
USERS_TABLE = os.getenv("USERS_TABLE", "users")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration (relay responses must be readable from any origin)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Relay Configuration
RELAY_TIMEOUT = float(os.getenv("RELAY_TIMEOUT", "30.0"))  # seconds
# Empty means open proxy
RELAY_ALLOWED_HOSTS = [
    host.strip().lower()
    for host in os.getenv("RELAY_ALLOWED_HOSTS", "").split(",")
    if host.strip()
]

# Reader Configuration
WORDS_PER_PAGE = int(os.getenv("WORDS_PER_PAGE", "300"))

# Upstream catalogs
GUTENDEX_API_URL = os.getenv("GUTENDEX_API_URL", "https://gutendex.com")
LIBRIVOX_API_URL = os.getenv("LIBRIVOX_API_URL", "https://librivox.org/api/feed")
OPENLIBRARY_API_URL = os.getenv("OPENLIBRARY_API_URL", "https://openlibrary.org")
OPENLIBRARY_COVERS_URL = os.getenv("OPENLIBRARY_COVERS_URL", "https://covers.openlibrary.org")
CATALOG_TIMEOUT = float(os.getenv("CATALOG_TIMEOUT", "30.0"))
COVER_PLACEHOLDER = "/image-placeholder.jpg"

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
