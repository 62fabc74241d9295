"""Batched multi-file pushes: one atomic commit per site repository.

Each site runs blobs -> tree -> commit -> ref against the Git Data API; the
batch fans sites out over a small thread pool and writes a single audit row.
"""
from __future__ import annotations
import sqlite3, requests
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from publisher.github_files import GitHubError, tree_entry

STEP_MESSAGES = {
    "get ref": "Failed to get branch",
    "get commit": "Failed to get commit",
    "create tree": "Failed to create tree",
    "create commit": "Failed to create commit",
    "update ref": "Failed to update branch",
}

def _result(site: dict, status: str, message: str, **extra) -> dict:
    out = {
        "siteId": site.get("siteId"),
        "siteName": site.get("siteName"),
        "status": status,
        "message": message,
    }
    out.update({k: v for k, v in extra.items() if v is not None})
    return out

def commit_url(web_url: str, owner: str, repo: str, sha: str) -> str:
    return f"{web_url.rstrip('/')}/{owner}/{repo}/commit/{sha}"

def _upload_blobs(client, owner: str, repo: str, changes: list[dict]):
    entries, files = [], []
    for ch in changes:
        path = (ch.get("path") or "").lstrip("/")
        try:
            sha = client.create_blob(owner, repo, ch.get("content") or "", ch.get("encoding") or "utf-8")
        except GitHubError as e:
            print(f"      blob failed: {path} ({e.status})", flush=True)
            files.append({"path": path, "status": "failed", "message": f"Failed to create blob: {e.status}"})
            continue
        entries.append(tree_entry(path, sha))
        files.append({"path": path, "status": "uploaded", "sha": sha})
    return entries, files

def push_site(client, site: dict, store, cfg: dict) -> dict:
    changes = site.get("changes") or []
    if not changes:
        return _result(site, "skipped", "No changes to push")

    owner, repo = site.get("repoOwner"), site.get("repoName")
    if not owner or not repo:
        return _result(site, "skipped", "Repository information incomplete")

    branch = site.get("branch") or cfg["github"]["default_branch"]
    message = site.get("commitMessage") or cfg["push"]["default_commit_message"]
    retries = int(cfg["push"].get("ref_update_retries", 0))
    files = None

    try:
        head = client.get_branch_sha(owner, repo, branch)
        base_tree = client.get_commit_tree(owner, repo, head)

        entries, files = _upload_blobs(client, owner, repo, changes)
        if not entries:
            return _result(site, "skipped", "No files could be processed", files=files)

        attempt = 0
        while True:
            tree = client.create_tree(owner, repo, base_tree, entries)
            sha = client.create_commit(owner, repo, message, tree, head)
            try:
                client.update_ref(owner, repo, branch, sha)
                break
            except GitHubError as e:
                if e.status != 422 or attempt >= retries:
                    raise
                attempt += 1
                print(f"      {owner}/{repo}@{branch} moved, re-basing ({attempt}/{retries})", flush=True)
                # blobs are content-addressed, only the tree and commit need redoing
                head = client.get_branch_sha(owner, repo, branch)
                base_tree = client.get_commit_tree(owner, repo, head)
    except GitHubError as e:
        print(f"      {owner}/{repo}: {e}", flush=True)
        return _result(site, "failed", f"{STEP_MESSAGES.get(e.step, e.step)}: {e.status}", files=files)

    try:
        store.mark_pushed(site.get("siteId"), sha)
    except (sqlite3.Error, requests.RequestException) as e:
        print(f"      could not record push for {site.get('siteId')}: {e}", flush=True)

    pushed = len(entries)
    msg = f"Pushed {pushed} file(s)" if pushed == len(changes) else f"Pushed {pushed} of {len(changes)} file(s)"
    print(f"      ok: {owner}/{repo} -> {sha}", flush=True)
    return _result(site, "success", msg, commitSha=sha,
                   commitUrl=commit_url(cfg["github"]["web_url"], owner, repo, sha), files=files)

def summarize(results: list[dict]) -> dict:
    counts = Counter(r["status"] for r in results)
    return {
        "total": len(results),
        "success": counts["success"],
        "failed": counts["failed"],
        "skipped": counts["skipped"],
    }

def push_batch(sites: list[dict], client, store, cfg: dict) -> dict:
    n = len(sites)
    workers = max(1, int(cfg["push"].get("max_workers", 1)))
    print(f">> Pushing changes to {n} repositories ({workers} worker(s))…", flush=True)

    def run(item):
        i, site = item
        print(f"   [{i}/{n}] {site.get('repoOwner')}/{site.get('repoName')}", flush=True)
        try:
            return push_site(client, site, store, cfg)
        except Exception as e:
            print(f"      error pushing {site.get('siteName')}: {e}", flush=True)
            return _result(site, "failed", str(e) or "Unknown error")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(run, enumerate(sites, 1)))

    summary = summarize(results)
    try:
        store.insert_audit_log("github_push_changes", "github", {
            "sites_processed": n,
            "results": results,
            "summary": {k: summary[k] for k in ("success", "failed", "skipped")},
        })
    except (sqlite3.Error, requests.RequestException) as e:
        print(f"   audit log write failed: {e}", flush=True)

    print(f">> Push done: {summary}", flush=True)
    return {"results": results, "summary": summary}
