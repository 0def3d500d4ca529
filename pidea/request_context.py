from dataclasses import dataclass


SINGLE_USER_ID = "me"


@dataclass
class RequestContext:
    """Request-scoped context for the single local user"""
    user_id: str = SINGLE_USER_ID
