import copy, pytest
from config import DEFAULTS
from db import SQLiteStore
from publisher.github_files import GitDataClient
from fakes import FakeGitHub

@pytest.fixture
def cfg():
    c = copy.deepcopy(DEFAULTS)
    c["push"]["max_workers"] = 1
    c["npm_integrations"] = {
        "stripe": "stripe",
        "@stripe/stripe-js": "stripe",
        "@supabase/supabase-js": "supabase",
        "openai": "openai",
    }
    return c

@pytest.fixture
def store():
    s = SQLiteStore(":memory:")
    s.add_site("s1", "Alpha Site")
    s.add_imported_app("s1", "alpha", "https://lovable.dev/projects/abc")
    return s

@pytest.fixture
def gh():
    return FakeGitHub()

@pytest.fixture
def client(gh):
    return GitDataClient(gh)
