"""
Version information for the Aura API client, sent in the User-Agent header

Falls back to the installed distribution metadata or "unknown" when the
version was not injected at build time
"""

import os
from importlib import metadata

DISTRIBUTION_NAME = "aura-api-client"

# BUILD_TIME_VERSION is a placeholder that build tools can replace at build time
# (e.g., sed -i 's/__VERSION__/1.2.3/g' version.py)
BUILD_TIME_VERSION: str = "__VERSION__"


# VERSION resolution order:
# 1. AURA_CLIENT_VERSION environment variable (runtime override)
# 2. BUILD_TIME_VERSION if it was replaced at build time
# 3. Installed package metadata
# 4. "unknown" as final fallback
def _resolve_version() -> str:
    env_version = os.environ.get("AURA_CLIENT_VERSION")
    if env_version:
        return env_version
    if BUILD_TIME_VERSION != "__VERSION__":
        return BUILD_TIME_VERSION
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


VERSION: str = _resolve_version()


def user_agent() -> str:
    return f"{DISTRIBUTION_NAME}-python/{VERSION}"
