import os
import tempfile
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

from pingwatch.utils.platform_utils import Platform, PlatformUtils

# Load .env from project root
_project_root = Path(__file__).parent.parent.parent
load_dotenv(_project_root / ".env")

APP_NAME = "pingwatch"

# Probe defaults
DEFAULT_INTERVAL_MS = int(os.getenv("PINGWATCH_INTERVAL_MS", "1000"))
DEFAULT_TIMEOUT_MS = int(os.getenv("PINGWATCH_TIMEOUT_MS", "2000"))

# Trace diagnostics
TRACE_CONCURRENCY = int(os.getenv("PINGWATCH_TRACE_CONCURRENCY", "4"))
TRACE_MIN_TIMEOUT_MS = int(os.getenv("PINGWATCH_TRACE_MIN_TIMEOUT_MS", "100"))

# Extra seconds allowed on top of the probe timeout before a probe is abandoned
PROBE_TIMEOUT_GRACE_SEC = float(os.getenv("PINGWATCH_PROBE_GRACE_SEC", "1.0"))

# Export encoding for target lists, reports and transcripts
FILE_ENCODING = os.getenv("PINGWATCH_FILE_ENCODING", "utf-8")

# Temporary directory (cross-platform)
if PlatformUtils.get_platform() == Platform.WINDOWS:
    TMPDIR = os.path.join(tempfile.gettempdir(), APP_NAME)
elif PlatformUtils.get_platform() == Platform.MACOS:
    TMPDIR = os.path.join(os.path.expanduser("~/Library/Caches"), APP_NAME)
else:
    TMPDIR = os.environ.get("PINGWATCH_TMPDIR", f"/tmp/{APP_NAME}")

LOG_FILE = os.path.join(TMPDIR, f"{APP_NAME}.log")

# Default folder for results, transcripts and console logs
RESULTS_DIR = os.getenv("PINGWATCH_RESULTS_DIR", os.path.join(os.getcwd(), "Ping_Result"))
