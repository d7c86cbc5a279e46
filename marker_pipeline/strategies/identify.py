from abc import ABC, abstractmethod
from typing import Optional

from ..errors import ConfigurationError
from ..mp_types import Candidate


class IdentityResolver(ABC):
    """Strategy: map a candidate to a tag identity, or None to reject it."""

    name = "base"

    @abstractmethod
    def resolve(self, candidate: Candidate, width: int, height: int) -> Optional[int]: ...


class PositionIdentity(IdentityResolver):
    """
    Placeholder identity by screen position; no bit pattern is decoded.

    Upper-left centers are tag 0, anything else right of 40% of the width is
    tag 1, the rest is rejected. The bands overlap, and the tag 0 test wins.
    """

    name = "position"

    def resolve(self, candidate: Candidate, width: int, height: int) -> Optional[int]:
        cx, cy = candidate.center
        if cx < width * 0.6 and cy < height * 0.6:
            return 0
        if cx > width * 0.4:
            return 1
        return None


def get_resolver(policy: str) -> IdentityResolver:
    key = (policy or "").strip().lower()
    if key == PositionIdentity.name:
        return PositionIdentity()
    if key == "codebook":
        raise ConfigurationError(
            "Identity policy 'codebook' needs a family codebook decoder, "
            "which is not available; use 'position'"
        )
    raise ConfigurationError(f"Unknown identity policy: {policy!r}")
