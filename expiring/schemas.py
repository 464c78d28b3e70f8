from __future__ import annotations

from typing import Annotated

from pydantic import Field, TypeAdapter

# seconds, in the unit asyncio's call_later expects
TTL = Annotated[float, Field(ge=0, allow_inf_nan=False)]

_ttl_adapter: TypeAdapter[float] = TypeAdapter(TTL)


def validate_ttl(ttl: object) -> float:
    """Return ``ttl`` as a float or raise ``pydantic.ValidationError``."""
    return _ttl_adapter.validate_python(ttl)
