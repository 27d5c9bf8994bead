"""
Parsing of GitHub webhook payloads.

Only pull request deliveries lead to builds: the head commit of the pull
request is built in the head repository, which may be a fork.
"""

from typing import Any

from ci_common.models import Repository

PULL_REQUEST_EVENT = "pull_request"
PING_EVENT = "ping"
OBSERVED_EVENTS = {"push", "create"}


def parse_repository(data: Any) -> Repository:
    """
    Build a Repository from a GitHub repository object.

    Raises:
        ValueError: If the object lacks the owner login or name
    """
    if not isinstance(data, dict):
        raise ValueError("repository is missing")

    owner = data.get("owner") or {}
    login = owner.get("login") if isinstance(owner, dict) else None
    name = data.get("name")
    if not isinstance(login, str) or not isinstance(name, str) or not login or not name:
        raise ValueError("repository owner login or name is missing")

    clone_url = data.get("clone_url")
    return Repository(
        owner=login,
        name=name,
        clone_url=clone_url if isinstance(clone_url, str) else None,
    )


def parse_pull_request(payload: Any) -> tuple[Repository, str]:
    """
    Extract the head repository and head commit of a pull_request delivery.

    Args:
        payload: Decoded JSON body of the delivery

    Returns:
        Tuple of (head repository, head commit sha)

    Raises:
        ValueError: If the payload does not describe a pull request head
    """
    if not isinstance(payload, dict):
        raise ValueError("payload is not an object")

    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        raise ValueError("pull_request is missing")

    head = pull_request.get("head")
    if not isinstance(head, dict):
        raise ValueError("pull_request.head is missing")

    sha = head.get("sha")
    if not isinstance(sha, str) or not sha:
        raise ValueError("pull_request.head.sha is missing")

    return parse_repository(head.get("repo")), sha
