from config import DEFAULTS, load_config

def test_yaml_overrides_merge_into_defaults(tmp_path):
    p = tmp_path / "cc.yaml"
    p.write_text("push:\n  max_workers: 8\ngithub:\n  default_branch: trunk\n", encoding="utf-8")
    cfg = load_config(p)
    assert cfg["push"]["max_workers"] == 8
    assert cfg["push"]["ref_update_retries"] == DEFAULTS["push"]["ref_update_retries"]
    assert cfg["github"]["default_branch"] == "trunk"
    assert cfg["github"]["api_url"] == "https://api.github.com"

def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.yaml") == DEFAULTS

def test_shipped_config_maps_npm_packages():
    cfg = load_config()
    assert cfg["npm_integrations"]["@stripe/stripe-js"] == "stripe"
