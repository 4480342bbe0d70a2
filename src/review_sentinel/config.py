import os
import dotenv
import logging

from review_sentinel.exceptions import MissingConfiguration

dotenv.load_dotenv()

GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN")

GITHUB_WEBHOOK_SECRET = os.environ.get("GITHUB_WEBHOOK_SECRET")
GITHUB_PRIVATE_KEY = os.environ.get("GITHUB_PRIVATE_KEY")
GITHUB_APP_ID = os.environ.get("GITHUB_APP_ID")
if GITHUB_APP_ID is not None:
    GITHUB_APP_ID = int(GITHUB_APP_ID)

CODEOWNERS_PATH = os.environ.get("CODEOWNERS_PATH", ".github/CODEOWNERS")

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "WARNING"))

AUTHOR_ALLOWLIST = os.environ.get("AUTHOR_ALLOWLIST")
if AUTHOR_ALLOWLIST is not None:
    AUTHOR_ALLOWLIST = [a.strip() for a in AUTHOR_ALLOWLIST.split(",") if a.strip()]

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

ACCESS_TOKEN_TTL = float(os.environ.get("ACCESS_TOKEN_TTL", 300))

DEBOUNCE_SECONDS = float(os.environ.get("DEBOUNCE_SECONDS", 2))

DRY_RUN = os.environ.get("DRY_RUN", "false") == "true"


def require(name: str):
    value = globals().get(name)
    if value is None or value == "":
        raise MissingConfiguration(name)
    return value


def is_author_permitted(login: str) -> bool:
    if AUTHOR_ALLOWLIST is None:
        return True
    return login in AUTHOR_ALLOWLIST
