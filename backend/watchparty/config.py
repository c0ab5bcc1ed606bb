import os

# Comma separated list, "*" allows any origin
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Reject create_session / switch_url with URLs no known site extractor accepts
VALIDATE_MEDIA = os.getenv("VALIDATE_MEDIA", "true").lower() in ("1", "true", "yes")
