import pytest
from publisher.github_files import GitHubError, github_session, tree_entry
from fakes import ok, fail

def test_session_headers():
    s = github_session("tok", "Control-Center")
    assert s.headers["Authorization"] == "Bearer tok"
    assert s.headers["Accept"] == "application/vnd.github.v3+json"
    assert s.headers["User-Agent"] == "Control-Center"

def test_session_without_token_is_anonymous():
    assert "Authorization" not in github_session(None).headers

def test_ref_and_commit_lookups(gh, client):
    gh.on("GET", "/repos/o/r/git/refs/heads/dev", ok({"object": {"sha": "abc"}}))
    gh.on("GET", "/repos/o/r/git/commits/abc", ok({"tree": {"sha": "tree1"}}))
    assert client.get_branch_sha("o", "r", "dev") == "abc"
    assert client.get_commit_tree("o", "r", "abc") == "tree1"

def test_update_ref_is_never_forced(gh, client):
    gh.on("PATCH", "/repos/o/r/git/refs/heads/main", ok())
    client.update_ref("o", "r", "main", "c1")
    assert gh.called("PATCH", "/git/refs/heads/main") == [{"sha": "c1", "force": False}]

def test_blob_keeps_encoding(gh, client):
    gh.on("POST", "/repos/o/r/git/blobs", ok({"sha": "b1"}, 201))
    assert client.create_blob("o", "r", "aGk=", "base64") == "b1"
    assert gh.called("POST", "/git/blobs") == [{"content": "aGk=", "encoding": "base64"}]

def test_non_2xx_raises_with_status(gh, client):
    gh.on("POST", "/repos/o/r/git/trees", fail(422, "bad tree"))
    with pytest.raises(GitHubError) as exc:
        client.create_tree("o", "r", "t0", [])
    assert exc.value.status == 422
    assert exc.value.step == "create tree"
    assert "bad tree" in exc.value.text

def test_tree_entry_strips_leading_slash():
    assert tree_entry("/src/app.ts", "s") == {"path": "src/app.ts", "mode": "100644", "type": "blob", "sha": "s"}

def test_api_message_reads_github_error_body():
    assert GitHubError("x", 403, '{"message": "Must have admin rights"}').api_message == "Must have admin rights"
    assert GitHubError("x", 502, "<html>bad gateway</html>").api_message == ""
    assert GitHubError("x", 500, "[1, 2]").api_message == ""
