import requests
from repos.visibility import scan, remediate, SCAN_RESIDUAL_RISKS
from fakes import ok, fail

def add_apps(store):
    store.add_site("s2", "Beta Site")
    store.add_imported_app("s2", "beta", "https://lovable.dev/projects/b", "https://github.com/acme/beta.git")
    store.add_site("s3", "Gamma Site")
    store.add_imported_app("s3", "gamma", "https://lovable.dev/projects/g", "https://github.com/acme/gamma")

def test_scan_reports_missing_urls(store):
    add_apps(store)
    report = scan(store)
    by_site = {r["siteId"]: r for r in report["inventory"]}
    assert by_site["s1"]["message"].startswith("GitHub repository URL not configured")
    assert by_site["s1"]["repoOwner"] == "unknown"
    assert by_site["s2"]["message"] == "Ready for visibility change"
    assert (by_site["s2"]["repoOwner"], by_site["s2"]["repoName"]) == ("acme", "beta")
    assert all(r["status"] == "skipped" for r in report["inventory"])
    assert report["summary"] == {"total": 3, "success": 0, "failed": 0, "skipped": 3}
    assert report["finalAcceptance"]["allPrivate"] is False
    assert report["finalAcceptance"]["residualRisks"] == SCAN_RESIDUAL_RISKS
    assert store.audit_logs() == []

def test_remediate_makes_public_repos_private(gh, client):
    from db import SQLiteStore
    store = SQLiteStore(":memory:")
    add_apps(store)
    gh.on("GET", "/repos/acme/beta", ok({"private": True, "visibility": "private"}))
    gh.on("GET", "/repos/acme/gamma", ok({"private": False, "visibility": "public"}))
    gh.on("PATCH", "/repos/acme/gamma", ok({"private": True}))

    report = remediate(client, store)
    assert [r["message"] for r in report["inventory"]] == [
        "Already private - no change needed",
        "Successfully changed to private",
    ]
    assert report["inventory"][1]["currentVisibility"] == "public"
    assert gh.called("PATCH", "/repos/acme/gamma") == [{"private": True, "visibility": "private"}]
    assert gh.called("PATCH", "/repos/acme/beta") == []
    assert report["finalAcceptance"] == {
        "allPrivate": True,
        "residualRisks": [],
        "conclusion": "All imported site repositories are now PRIVATE",
    }
    logs = store.audit_logs()
    assert logs[0]["action"] == "github_visibility_remediation"
    assert logs[0]["resource"] == "imported_apps"

def test_remediate_records_item_failures(gh, client, store):
    add_apps(store)
    gh.on("GET", "/repos/acme/beta", ok({"private": False, "visibility": "internal"}))
    gh.on("PATCH", "/repos/acme/beta", fail(403, "Must have admin rights"))
    gh.on("GET", "/repos/acme/gamma", ok({"private": True}))

    report = remediate(client, store)
    assert [r["status"] for r in report["inventory"]] == ["skipped", "failed", "success"]
    assert report["inventory"][1]["message"] == "Failed to update: Must have admin rights"
    fa = report["finalAcceptance"]
    assert fa["allPrivate"] is False
    assert fa["residualRisks"] == [
        "Some repositories could not be changed to private",
        "Some repositories need github_repo_url configured",
    ]
    assert fa["conclusion"] == "1/3 repositories are private. Review failed/skipped items."
    assert any(e["action"] == "Beta Site: Error" for e in report["executionLog"])

def test_remediate_with_nothing_imported_is_not_all_private(client):
    from db import SQLiteStore
    report = remediate(client, SQLiteStore(":memory:"))
    assert report["summary"]["total"] == 0
    assert report["finalAcceptance"]["allPrivate"] is False

class AuditDownStore:
    def __init__(self, inner):
        self.inner = inner

    def imported_apps(self):
        return self.inner.imported_apps()

    def insert_audit_log(self, action, resource, details):
        raise requests.HTTPError("503 audit down")

def test_remediate_returns_report_when_audit_write_fails(gh, client, store):
    add_apps(store)
    gh.on("GET", "/repos/acme/beta", ok({"private": False, "visibility": "public"}))
    gh.on("PATCH", "/repos/acme/beta", ok({"private": True}))
    gh.on("GET", "/repos/acme/gamma", ok({"private": True}))

    report = remediate(client, AuditDownStore(store))
    assert [r["status"] for r in report["inventory"]] == ["skipped", "success", "success"]
    assert len(gh.called("PATCH", "/repos/acme/beta")) == 1

def test_lookup_failure_message_is_readable(gh, client, store):
    add_apps(store)
    gh.on("GET", "/repos/acme/beta", fail(404, "Not Found"))
    gh.on("GET", "/repos/acme/gamma", ok({"private": True}))
    report = remediate(client, store)
    assert report["inventory"][1]["message"] == "GitHub API error: 404 Not Found"

def test_unexpected_payload_fails_only_that_item(gh, client, store):
    add_apps(store)
    gh.on("GET", "/repos/acme/beta", ok(["not", "a", "repo"]))
    gh.on("GET", "/repos/acme/gamma", ok({"private": True}))
    report = remediate(client, store)
    assert [r["status"] for r in report["inventory"]] == ["skipped", "failed", "success"]
    assert report["inventory"][1]["message"]
