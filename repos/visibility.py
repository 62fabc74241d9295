"""Inventory of imported-app repositories and remediation to private visibility."""
from __future__ import annotations
import datetime, sqlite3, requests
from publisher.github_files import GitHubError
from publisher.push_changes import summarize
from repos.urls import parse_github_repo

SCAN_RESIDUAL_RISKS = [
    "GITHUB_TOKEN secret not configured or missing repo scope",
    "GitHub repository URLs not stored in imported_apps table",
    "Token owner may not have admin access to all repositories",
]

TOKEN_INSTRUCTIONS = [
    "1. Go to GitHub Settings > Developer settings > Personal access tokens",
    '2. Generate a new token with "repo" scope (full control of private repositories)',
    "3. Add the token as GITHUB_TOKEN in the service environment",
    "4. Ensure the token owner has admin access to all target repositories",
]

def _ts() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

def _site_name(app: dict) -> str:
    return app.get("site_name") or app.get("project_name") or "Unknown"

def _item(app: dict, status: str, message: str, owner: str = "unknown", repo: str | None = None,
          current: str = "unknown") -> dict:
    return {
        "siteId": app.get("site_id"),
        "siteName": _site_name(app),
        "repoName": repo or app.get("project_name") or "unknown",
        "repoOwner": owner,
        "currentVisibility": current,
        "newVisibility": "private",
        "status": status,
        "message": message,
    }

def _report(inventory, log, all_private: bool, risks: list[str], conclusion: str) -> dict:
    return {
        "inventory": inventory,
        "executionLog": log,
        "summary": summarize(inventory),
        "finalAcceptance": {
            "allPrivate": all_private,
            "residualRisks": risks,
            "conclusion": conclusion,
        },
    }

def scan(store) -> dict:
    print(">> Scanning imported apps for GitHub repositories…", flush=True)
    inventory, log = [], []
    for app in store.imported_apps():
        name = _site_name(app)
        log.append({"timestamp": _ts(), "action": f"Scanning {name}", "result": "Processing..."})
        parsed = parse_github_repo(app.get("github_repo_url"))
        if not parsed:
            inventory.append(_item(app, "skipped",
                "GitHub repository URL not configured. Add github_repo_url to imported_apps table."))
            log.append({"timestamp": _ts(), "action": f"{name}: GitHub URL not found",
                        "result": "Skipped - needs manual configuration"})
            continue
        owner, repo = parsed
        inventory.append(_item(app, "skipped", "Ready for visibility change", owner, repo))

    return _report(inventory, log, False, list(SCAN_RESIDUAL_RISKS),
                   "Scan complete. Execute remediation to change visibility.")

def failure_message(e: Exception) -> str:
    if isinstance(e, GitHubError):
        if e.step == "update repo":
            return f"Failed to update: {e.api_message or e.status}"
        return f"GitHub API error: {e.status} {e.api_message}".rstrip()
    return str(e) or type(e).__name__

def _remediate_one(client, app: dict, log: list) -> dict:
    name = _site_name(app)
    parsed = parse_github_repo(app.get("github_repo_url"))
    if not parsed:
        raise ValueError("Invalid GitHub URL format")
    owner, repo = parsed

    log.append({"timestamp": _ts(), "action": f"{name}: Fetching current visibility", "result": "In progress..."})
    data = client.get_repo(owner, repo)
    current = "private" if data.get("private") else (data.get("visibility") or "public")
    if current == "private":
        log.append({"timestamp": _ts(), "action": f"{name}: Already private", "result": "No change needed"})
        return _item(app, "success", "Already private - no change needed", owner, repo, "private")

    log.append({"timestamp": _ts(), "action": f"{name}: Changing visibility to private", "result": "In progress..."})
    client.make_private(owner, repo)
    log.append({"timestamp": _ts(), "action": f"{name}: Visibility changed",
                "result": f"Changed from {current} to private"})
    return _item(app, "success", "Successfully changed to private", owner, repo, current)

def remediate(client, store) -> dict:
    print(">> Starting GitHub repository visibility remediation…", flush=True)
    inventory, log = [], []
    for app in store.imported_apps():
        name = _site_name(app)
        if not app.get("github_repo_url"):
            inventory.append(_item(app, "skipped", "GitHub repository URL not configured in database"))
            log.append({"timestamp": _ts(), "action": f"{name}: Check GitHub URL",
                        "result": "Skipped - github_repo_url column needed"})
            continue
        try:
            inventory.append(_remediate_one(client, app, log))
        except Exception as e:
            print(f"   {name}: {e}", flush=True)
            msg = failure_message(e)
            inventory.append(_item(app, "failed", msg))
            log.append({"timestamp": _ts(), "action": f"{name}: Error", "result": msg})

    ok = sum(1 for r in inventory if r["status"] == "success")
    all_private = bool(inventory) and ok == len(inventory)
    risks = []
    if not all_private:
        risks.append("Some repositories could not be changed to private")
        if any(r["status"] == "skipped" for r in inventory):
            risks.append("Some repositories need github_repo_url configured")
    conclusion = ("All imported site repositories are now PRIVATE" if all_private
                  else f"{ok}/{len(inventory)} repositories are private. Review failed/skipped items.")
    report = _report(inventory, log, all_private, risks, conclusion)

    try:
        store.insert_audit_log("github_visibility_remediation", "imported_apps", report)
    except (sqlite3.Error, requests.RequestException) as e:
        print(f"   audit log write failed: {e}", flush=True)
    print(f">> Remediation done: {report['summary']}", flush=True)
    return report
