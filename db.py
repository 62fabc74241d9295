import os, json, sqlite3, threading, datetime, requests
from pathlib import Path

def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

class SQLiteStore:
    """Local stand-in for the Control Center tables."""

    def __init__(self, db_path: str | Path):
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.con = sqlite3.connect(str(db_path), check_same_thread=False)
        self.con.row_factory = sqlite3.Row
        self.lock = threading.Lock()
        self.con.executescript("""
        CREATE TABLE IF NOT EXISTS sites (
            id TEXT PRIMARY KEY,
            name TEXT,
            status TEXT
        );
        CREATE TABLE IF NOT EXISTS imported_apps (
            site_id TEXT PRIMARY KEY,
            project_name TEXT,
            lovable_url TEXT,
            github_repo_url TEXT,
            github_last_push_at TEXT,
            github_last_commit_sha TEXT
        );
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            action TEXT,
            resource TEXT,
            details TEXT,
            created_at TEXT
        );
        """)
        self.con.commit()

    def add_site(self, site_id: str, name: str, status: str = "active"):
        with self.lock:
            self.con.execute("INSERT OR REPLACE INTO sites (id, name, status) VALUES (?, ?, ?)",
                             (site_id, name, status))
            self.con.commit()

    def add_imported_app(self, site_id: str, project_name: str, lovable_url: str = "",
                         github_repo_url: str | None = None):
        with self.lock:
            self.con.execute(
                "INSERT OR REPLACE INTO imported_apps (site_id, project_name, lovable_url, github_repo_url) "
                "VALUES (?, ?, ?, ?)",
                (site_id, project_name, lovable_url, github_repo_url))
            self.con.commit()

    def imported_apps(self) -> list[dict]:
        with self.lock:
            rows = self.con.execute("""
                SELECT a.*, s.name AS site_name, s.status AS site_status
                FROM imported_apps a LEFT JOIN sites s ON s.id = a.site_id
                ORDER BY a.rowid
            """).fetchall()
        return [dict(r) for r in rows]

    def get_imported_app(self, site_id: str) -> dict | None:
        with self.lock:
            row = self.con.execute("SELECT * FROM imported_apps WHERE site_id=?", (site_id,)).fetchone()
        return dict(row) if row else None

    def mark_pushed(self, site_id: str, commit_sha: str):
        with self.lock:
            self.con.execute(
                "UPDATE imported_apps SET github_last_push_at=?, github_last_commit_sha=? WHERE site_id=?",
                (_now(), commit_sha, site_id))
            self.con.commit()

    def insert_audit_log(self, action: str, resource: str, details: dict):
        with self.lock:
            self.con.execute(
                "INSERT INTO audit_logs (action, resource, details, created_at) VALUES (?, ?, ?, ?)",
                (action, resource, json.dumps(details), _now()))
            self.con.commit()

    def audit_logs(self) -> list[dict]:
        with self.lock:
            rows = self.con.execute("SELECT * FROM audit_logs ORDER BY id").fetchall()
        return [{**dict(r), "details": json.loads(r["details"])} for r in rows]

class SupabaseStore:
    """Same tables, reached through Supabase's PostgREST API with the service-role key."""

    def __init__(self, url: str, service_key: str, timeout: float = 15):
        self.rest = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    def imported_apps(self) -> list[dict]:
        r = requests.get(f"{self.rest}/imported_apps", headers=self.headers,
                         params={"select": "*,sites(name,status)"}, timeout=self.timeout)
        r.raise_for_status()
        out = []
        for row in r.json():
            site = row.pop("sites", None) or {}
            out.append({**row, "site_name": site.get("name"), "site_status": site.get("status")})
        return out

    def mark_pushed(self, site_id: str, commit_sha: str):
        r = requests.patch(f"{self.rest}/imported_apps", params={"site_id": f"eq.{site_id}"},
                           headers={**self.headers, "Prefer": "return=minimal"},
                           json={"github_last_push_at": _now(), "github_last_commit_sha": commit_sha},
                           timeout=self.timeout)
        r.raise_for_status()

    def insert_audit_log(self, action: str, resource: str, details: dict):
        r = requests.post(f"{self.rest}/audit_logs",
                          headers={**self.headers, "Prefer": "return=minimal"},
                          json={"action": action, "resource": resource, "details": details},
                          timeout=self.timeout)
        r.raise_for_status()

def open_store(cfg: dict, base: Path | None = None):
    store_cfg = cfg.get("store", {})
    backend = store_cfg.get("backend", "auto")
    url, key = os.getenv("SUPABASE_URL"), os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if backend == "supabase" or (backend == "auto" and url and key):
        if not (url and key):
            raise ValueError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are missing or empty.")
        print(">> Store: supabase", flush=True)
        return SupabaseStore(url, key)
    db_path = Path(store_cfg.get("db_path", "data/control_center.db"))
    if base and not db_path.is_absolute():
        db_path = base / db_path
    print(f">> Store: sqlite ({db_path})", flush=True)
    return SQLiteStore(db_path)
