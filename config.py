import os, copy, yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE = Path(__file__).resolve().parent

DEFAULTS = {
    "github": {
        "api_url": "https://api.github.com",
        "web_url": "https://github.com",
        "user_agent": "Control-Center",
        "timeout": 20,
        "default_branch": "main",
    },
    "push": {
        "max_workers": 4,
        "ref_update_retries": 0,
        "default_commit_message": "Update from Control Center",
    },
    "store": {
        "backend": "auto",   # auto | sqlite | supabase
        "db_path": "data/control_center.db",
    },
    "server": {"host": "0.0.0.0", "port": 8080},
    "npm_integrations": {},
}

def _merge(base: dict, over: dict) -> dict:
    out = copy.deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out

def load_config(path: str | Path | None = None) -> dict:
    path = Path(path or os.getenv("CONTROL_CENTER_CONFIG") or BASE / "config.yaml")
    raw = {}
    if path.exists():
        print(f">> Loading {path.name} …", flush=True)
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return _merge(DEFAULTS, raw)

def github_token() -> str | None:
    return os.getenv("GITHUB_TOKEN") or None
