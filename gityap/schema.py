from typing import Any, Dict, List

USER_INT_FIELDS = ["followers", "following", "public_repos"]
USER_STR_FIELDS = ["avatar_url", "html_url"]

# Channel payloads arrive camelCase from the channel collaborator and
# snake_case from stored snapshots; both spellings are accepted.
CHANNEL_INT_FIELDS = {
    "postCount": "post_count",
    "participantsCount": "participants_count",
}


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_count(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0


def validate_user_payload(data: Any) -> List[str]:
    """
    Validate a code-platform ``/users/{handle}`` body.
    Returns a list of error messages. Empty list means valid.
    """
    if not isinstance(data, dict):
        return ["Payload must be an object"]

    errors: List[str] = []
    if not _is_non_empty_str(data.get("login")):
        errors.append("Field 'login' must be a non-empty string")

    for f in USER_INT_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_count(data[f]):
            errors.append(f"Field '{f}' must be a non-negative integer")

    for f in USER_STR_FIELDS:
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    return errors


def validate_channel_payload(data: Any) -> List[str]:
    """
    Validate a channel-info payload ``{title, username, postCount, participantsCount}``.
    Returns a list of error messages. Empty list means valid.
    """
    if not isinstance(data, dict):
        return ["Payload must be an object"]

    errors: List[str] = []
    if not _is_non_empty_str(data.get("username")):
        errors.append("Field 'username' must be a non-empty string")
    if "title" in data and data["title"] is not None and not isinstance(data["title"], str):
        errors.append("Field 'title' must be a string if provided")

    for camel, snake in CHANNEL_INT_FIELDS.items():
        value = data.get(camel, data.get(snake))
        if value is None:
            errors.append(f"Missing required field: {camel}")
        elif not _is_count(value):
            errors.append(f"Field '{camel}' must be a non-negative integer")

    return errors


def validate_repo_list(data: Any) -> List[str]:
    """Validate one page of ``/users/{handle}/repos``."""
    if not isinstance(data, list):
        return ["Repository page must be an array"]
    errors: List[str] = []
    for i, repo in enumerate(data):
        if not isinstance(repo, dict) or not _is_non_empty_str(repo.get("name")):
            errors.append(f"Repository #{i} has no name")
    return errors


def channel_field(data: Dict[str, Any], camel: str) -> Any:
    """Read a channel counter under either spelling."""
    return data.get(camel, data.get(CHANNEL_INT_FIELDS[camel]))
