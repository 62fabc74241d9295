import json, requests

class GitHubError(RuntimeError):
    def __init__(self, step: str, status: int, text: str = ""):
        super().__init__(f"{step} failed ({status}): {text}")
        self.step = step
        self.status = status
        self.text = text

    @property
    def api_message(self) -> str:
        """GitHub's own `message` field from the error body, or '' if there is none."""
        try:
            body = json.loads(self.text)
        except ValueError:
            return ""
        if not isinstance(body, dict):
            return ""
        return str(body.get("message") or "")

def github_session(token: str | None, user_agent: str = "Control-Center") -> requests.Session:
    s = requests.Session()
    s.headers.update({
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": user_agent,
    })
    if token:
        s.headers["Authorization"] = f"Bearer {token}"
    return s

class GitDataClient:
    """Thin wrapper over the repository and Git Data endpoints of the GitHub API.

    Every method raises GitHubError on a non-2xx answer; transport errors
    (timeouts, resets) propagate as requests exceptions.
    """

    def __init__(self, session, api: str = "https://api.github.com", timeout: float = 20):
        self.session = session
        self.api = api.rstrip("/")
        self.timeout = timeout

    def _call(self, step: str, method: str, path: str, **kw):
        r = self.session.request(method, f"{self.api}{path}", timeout=self.timeout, **kw)
        if r.status_code >= 400:
            raise GitHubError(step, r.status_code, r.text)
        return r

    # --- refs / commits ---

    def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        ref = self._call("get ref", "GET", f"/repos/{owner}/{repo}/git/refs/heads/{branch}").json()
        return ref["object"]["sha"]

    def get_commit_tree(self, owner: str, repo: str, sha: str) -> str:
        commit = self._call("get commit", "GET", f"/repos/{owner}/{repo}/git/commits/{sha}").json()
        return commit["tree"]["sha"]

    def create_blob(self, owner: str, repo: str, content: str, encoding: str = "utf-8") -> str:
        blob = self._call("create blob", "POST", f"/repos/{owner}/{repo}/git/blobs", json={
            "content": content,
            "encoding": encoding,
        }).json()
        return blob["sha"]

    def create_tree(self, owner: str, repo: str, base_tree: str, entries: list[dict]) -> str:
        tree = self._call("create tree", "POST", f"/repos/{owner}/{repo}/git/trees", json={
            "base_tree": base_tree,
            "tree": entries,
        }).json()
        return tree["sha"]

    def create_commit(self, owner: str, repo: str, message: str, tree: str, parent: str) -> str:
        commit = self._call("create commit", "POST", f"/repos/{owner}/{repo}/git/commits", json={
            "message": message,
            "tree": tree,
            "parents": [parent],
        }).json()
        return commit["sha"]

    def update_ref(self, owner: str, repo: str, branch: str, sha: str):
        # never forced: GitHub answers 422 if the branch moved under us
        self._call("update ref", "PATCH", f"/repos/{owner}/{repo}/git/refs/heads/{branch}", json={
            "sha": sha,
            "force": False,
        })

    # --- repositories ---

    def get_repo(self, owner: str, repo: str) -> dict:
        return self._call("get repo", "GET", f"/repos/{owner}/{repo}").json()

    def make_private(self, owner: str, repo: str) -> dict:
        return self._call("update repo", "PATCH", f"/repos/{owner}/{repo}", json={
            "private": True,
            "visibility": "private",
        }).json()

    def get_package_json(self, owner: str, repo: str) -> dict:
        r = self._call("get package.json", "GET", f"/repos/{owner}/{repo}/contents/package.json",
                       headers={"Accept": "application/vnd.github.v3.raw"})
        return r.json()

def tree_entry(path: str, sha: str) -> dict:
    return {"path": path.lstrip("/"), "mode": "100644", "type": "blob", "sha": sha}
