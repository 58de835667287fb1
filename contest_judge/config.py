import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("JUDGE_DATA_DIR", str(BASE_DIR / "data")))
TEMP_DIR = Path(os.getenv("JUDGE_TEMP_DIR", str(DATA_DIR / "temp")))

# Toolchains per language
LANGUAGES = {
    "javascript": {
        "kind": "interpreted",
        "extension": ".js",
        "interpreter": os.getenv("NODE_BIN", "node"),
    },
    "python": {
        "kind": "interpreted",
        "extension": ".py",
        "interpreter": os.getenv("PYTHON_BIN", "python3"),
    },
    "java": {
        "kind": "bytecode",
        "extension": ".java",
        "compiler": os.getenv("JAVAC_BIN", "javac"),
        "runtime": os.getenv("JAVA_BIN", "java"),
    },
    "cpp": {
        "kind": "native",
        "extension": ".cpp",
        "compiler": os.getenv("GXX_BIN", "g++"),
        "args": ["-O2", "-std=c++17"],
    },
    "c": {
        "kind": "native",
        "extension": ".c",
        "compiler": os.getenv("GCC_BIN", "gcc"),
        "args": ["-O2", "-std=c11"],
        "libs": ["-lm"],
    },
}

# Judge settings
DEFAULT_TIME_LIMIT = int(os.getenv("DEFAULT_TIME_LIMIT", "2000"))  # ms
DEFAULT_MEMORY_LIMIT = int(os.getenv("DEFAULT_MEMORY_LIMIT", "128"))  # MB
COMPILE_TIMEOUT_MS = int(os.getenv("COMPILE_TIMEOUT_MS", "30000"))
OUTPUT_LIMIT = int(os.getenv("OUTPUT_LIMIT", str(10 * 1024 * 1024)))  # bytes per stream
MAX_CONCURRENT_JUDGES = int(os.getenv("MAX_CONCURRENT_JUDGES", "4"))

# Remote judge (Judge0). An empty key means judge locally.
JUDGE0_API_KEY = os.getenv("JUDGE0_API_KEY", "")
JUDGE0_URL = os.getenv("JUDGE0_URL", "https://judge0-ce.p.rapidapi.com")
JUDGE0_HOST = os.getenv("JUDGE0_HOST", "judge0-ce.p.rapidapi.com")
JUDGE0_POLL_INTERVAL = float(os.getenv("JUDGE0_POLL_INTERVAL", "1.0"))  # seconds
JUDGE0_MAX_POLLS = int(os.getenv("JUDGE0_MAX_POLLS", "30"))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{DATA_DIR}/judge.db")


def init_temp_dir() -> Path:
    """Create the shared work directory. Called once by the hosting process."""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    return TEMP_DIR
