from publisher.github_files import GitHubError
from repos.urls import parse_github_repo

class RepoNotResolved(ValueError):
    pass

def resolve_repo(github_url: str | None = None, owner: str | None = None, repo: str | None = None):
    parsed = parse_github_repo(github_url)
    if parsed:
        owner, repo = parsed
    if not owner or not repo:
        raise RepoNotResolved("Invalid GitHub URL or owner/repo not provided")
    return owner, repo

def match_integrations(package_json: dict, npm_map: dict) -> dict:
    deps = {**(package_json.get("dependencies") or {}), **(package_json.get("devDependencies") or {})}
    detected, matched = [], []
    for dep in deps:
        integration = npm_map.get(dep)
        if integration and integration not in detected:
            detected.append(integration)
            matched.append({"package": dep, "integration": integration})
    return {
        "detectedIntegrations": detected,
        "matchedPackages": matched,
        "totalDependencies": len(deps),
    }

def fetch_github_deps(client, owner: str, repo: str, npm_map: dict) -> dict:
    """Read package.json from the default branch and map npm packages to integration ids.

    GitHubError propagates; the HTTP layer turns 404/403 into hints.
    """
    print(f">> Fetching package.json from {owner}/{repo}", flush=True)
    pkg = client.get_package_json(owner, repo)
    found = match_integrations(pkg, npm_map)
    print(f">> Detected {len(found['detectedIntegrations'])} integrations "
          f"from {found['totalDependencies']} dependencies", flush=True)
    return {
        "success": True,
        "repoOwner": owner,
        "repoName": repo,
        "projectName": pkg.get("name") or repo,
        **found,
    }

def error_hint(e: GitHubError) -> dict:
    if e.status == 404:
        return {"error": "Repository or package.json not found",
                "hint": "Make sure the repository is public and contains a package.json file"}
    return {"error": f"GitHub API error: {e.status}",
            "hint": "Rate limit exceeded. Try again later." if e.status == 403 else "Unknown error"}
