"""URL helpers shared by the state codec and the dispatcher."""

from __future__ import annotations

from urllib.parse import quote

# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def workflow_history_url(server_url: str, repository: str, workflow_file: str, branch: str) -> str:
    """Run-history page of ``workflow_file`` filtered to ``branch``."""

    base = server_url.rstrip("/")
    return (
        f"{base}/{repository}/actions/workflows/{workflow_file}"
        f"?query=branch%3A{encode_uri_component(branch)}"
    )
