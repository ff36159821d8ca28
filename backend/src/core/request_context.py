"""Request-scoped identity passed explicitly through the call chain."""
from dataclasses import dataclass

from schemas.token import TokenClaim


@dataclass(frozen=True)
class RequestContext:
    """
    Who is making the current request.

    Built once per request by the auth dependencies and never shared across
    requests. `identity` is None for anonymous callers on routes that permit
    optional authentication.
    """

    identity: TokenClaim | None = None

    @property
    def is_authenticated(self) -> bool:
        """True when a valid access token was presented."""
        return self.identity is not None

    @property
    def user_id(self) -> int | None:
        """Authenticated user's id, or None for anonymous callers."""
        return self.identity.user_id if self.identity else None
