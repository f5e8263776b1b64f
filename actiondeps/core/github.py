"""GitHub repository identity helpers."""


def parse_repository(repository: str) -> tuple[str, str]:
    """Split ``owner/repo`` (or a GitHub URL) into ``(owner, repo)``.

    Raises ValueError if the value cannot be parsed.
    """
    result = _extract_owner_repo(repository)
    if result is None:
        raise ValueError(f"cannot parse GitHub repository: {repository!r}")
    owner, repo = result.split("/", 1)
    return owner, repo


def _extract_owner_repo(value: str) -> str | None:
    """Extract 'owner/repo' from a slug or GitHub URL.

    Handles:
      - owner/repo
      - https://github.com/owner/repo(.git)
      - git@github.com:owner/repo.git
    """
    value = value.strip().rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    if value.startswith("git@"):
        colon_idx = value.find(":")
        if colon_idx == -1:
            return None
        value = value[colon_idx + 1 :]
    elif "://" in value:
        value = value.split("://", 1)[1]
        value = value.split("/", 1)[1] if "/" in value else ""

    parts = value.split("/")
    if len(parts) == 2 and all(parts):
        return f"{parts[0]}/{parts[1]}"
    return None
