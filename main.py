import os
from flask import Flask, jsonify, request
from config import BASE, load_config, github_token
from db import open_store
from publisher.github_files import GitDataClient, GitHubError, github_session
from publisher.push_changes import push_batch
from repos.visibility import scan, remediate, TOKEN_INSTRUCTIONS
from repos.dependencies import RepoNotResolved, resolve_repo, fetch_github_deps, error_hint

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

def create_app(cfg: dict | None = None, store=None) -> Flask:
    cfg = cfg or load_config()
    app = Flask(__name__)
    app.config["CC"] = cfg
    app.config["STORE"] = store if store is not None else open_store(cfg, BASE)
    app.config["GITHUB_SESSION_FACTORY"] = github_session

    def client_for(token):
        gh = cfg["github"]
        session = app.config["GITHUB_SESSION_FACTORY"](token, gh["user_agent"])
        return GitDataClient(session, gh["api_url"], gh["timeout"])

    def error(status: int, **body):
        return jsonify(body), status

    @app.after_request
    def _cors(resp):
        resp.headers.update(CORS_HEADERS)
        return resp

    @app.post("/functions/v1/github-push-changes")
    def github_push_changes():
        try:
            token = github_token()
            if not token:
                return error(400, error="GITHUB_TOKEN not configured",
                             message="Please add your GitHub Personal Access Token in secrets")
            sites = (request.get_json(force=True) or {}).get("sites") or []
            if not sites:
                return error(400, error="No sites provided", results=[])
            return jsonify(push_batch(sites, client_for(token), app.config["STORE"], cfg))
        except Exception as e:
            print(f">> Error in github-push-changes: {e}", flush=True)
            return error(500, error=str(e) or "Unknown error")

    @app.post("/functions/v1/github-repo-visibility")
    def github_repo_visibility():
        try:
            action = (request.get_json(force=True) or {}).get("action")
            store = app.config["STORE"]
            if action == "scan":
                return jsonify(scan(store))
            if action == "remediate":
                token = github_token()
                if not token:
                    return error(400, error="GITHUB_TOKEN secret not configured",
                                 instructions=TOKEN_INSTRUCTIONS)
                return jsonify(remediate(client_for(token), store))
            return error(400, error='Invalid action. Use "scan" or "remediate"')
        except Exception as e:
            print(f">> Error in github-repo-visibility: {e}", flush=True)
            return error(500, error=str(e) or "Unknown error")

    @app.post("/functions/v1/fetch-github-deps")
    def fetch_deps():
        try:
            body = request.get_json(force=True) or {}
            owner, repo = resolve_repo(body.get("githubUrl"), body.get("owner"), body.get("repo"))
            return jsonify(fetch_github_deps(client_for(github_token()), owner, repo,
                                             cfg.get("npm_integrations") or {}))
        except RepoNotResolved as e:
            return error(400, error=str(e))
        except GitHubError as e:
            return error(e.status, **error_hint(e))
        except Exception as e:
            print(f">> Error fetching GitHub dependencies: {e}", flush=True)
            return error(500, error="Failed to fetch dependencies", details=str(e) or "Unknown error")

    @app.get("/healthz")
    def health():
        return "ok", 200

    return app

def main():
    cfg = load_config()
    print(">> Control Center GitHub service starting…", flush=True)
    app = create_app(cfg)
    port = int(os.getenv("PORT") or cfg["server"]["port"])
    app.run(host=cfg["server"]["host"], port=port)

if __name__ == "__main__":
    main()
