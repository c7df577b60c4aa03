"""Client device classification."""

import re

_MOBILE_PATTERN = re.compile(
    r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE
)


def is_mobile_user_agent(user_agent: str | None) -> bool:
    """Return True when the user agent looks like a phone or tablet."""
    if not user_agent:
        return False
    return _MOBILE_PATTERN.search(user_agent) is not None
