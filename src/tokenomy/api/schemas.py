from __future__ import annotations

"""Pydantic request schemas for the public API.

The canonical tx payload schemas live in tokenomy.runtime.tx_schema; these
exist only for HTTP input validation of query-style endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class CanClaimRequest(BaseModel):
    account: str = Field(..., description="Claiming account id")
    amount: int = Field(..., description="Allocated amount committed in the merkle leaf")
    proof: List[str] = Field(default_factory=list, description="Sibling hashes, leaf to root, hex")
    now: Optional[int] = Field(default=None, description="Evaluate at this unix time instead of the executor clock")

    model_config = {"extra": "forbid"}
