import os
from dotenv import load_dotenv

# Load settings from a .env file next to the app, if present
load_dotenv()

HOST = os.getenv("CPM_HOST", "127.0.0.1")
PORT = int(os.getenv("CPM_PORT", "5000"))
DEBUG = os.getenv("CPM_DEBUG", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("CPM_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Upper bound on events accepted in one submission
MAX_ACTIVITIES = int(os.getenv("CPM_MAX_ACTIVITIES", "1000"))
