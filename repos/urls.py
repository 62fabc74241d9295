import re

_PATTERNS = [
    re.compile(r"github\.com[/:]([^/]+)/([^/?#]+)"),
    re.compile(r"^([^/\s]+)/([^/\s]+)$"),
]

def parse_github_repo(url: str | None) -> tuple[str, str] | None:
    """'https://github.com/o/r.git', 'git@github.com:o/r' or 'o/r' -> ('o', 'r')."""
    if not url:
        return None
    url = url.strip()
    for pat in _PATTERNS:
        m = pat.search(url)
        if m and m.group(1) and m.group(2):
            repo = re.sub(r"\.git$", "", m.group(2))
            if repo:
                return m.group(1), repo
    return None
