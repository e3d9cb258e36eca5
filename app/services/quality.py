from __future__ import annotations

"""Quality negotiation: requested rendition + plan cap → what we actually serve."""

from dataclasses import dataclass
from typing import List, Optional, Union

from app.core.exceptions import ValidationError
from app.schemas.enums import Quality


@dataclass(frozen=True)
class NegotiatedQuality:
    serving: Quality
    allowed: List[Quality]


def negotiate(requested: Optional[Union[str, Quality]], cap: Quality) -> NegotiatedQuality:
    """
    Clamp to the plan cap, never reject for being too high.

    No request → the cap itself. Unknown labels are a `ValidationError`.
    """
    try:
        wanted = requested if isinstance(requested, Quality) else Quality.parse(requested)
    except ValueError:
        raise ValidationError(
            f"Unknown quality: {requested}",
            details={"allowed": [q.value for q in Quality]},
        )
    if wanted is None or wanted.rank > cap.rank:
        serving = cap
    else:
        serving = wanted
    return NegotiatedQuality(serving=serving, allowed=Quality.up_to(cap))


__all__ = ["NegotiatedQuality", "negotiate"]
