"""
Input Responses - What a client submits to answer a pending input.

Responses form a closed tagged union keyed by ``type``, which must equal
the kind of the input being answered:

    {"type": "or", "index": 2, "response": {"type": "amount", "amount": 8}}
    {"type": "and", "index": 0, "response": {"type": "option"}}
    {"type": "custom", "payload": {"target": "p1"}}

Wire payloads are validated by pydantic before they reach the resolver;
anything else raises MalformedResponseError.
"""

from __future__ import annotations
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, ValidationError

from ..errors import MalformedResponseError


class OptionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["option"] = "option"


class AmountResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["amount"] = "amount"
    amount: StrictInt


class CustomResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["custom"] = "custom"
    payload: dict[str, Any] = Field(default_factory=dict)


class OrResponse(BaseModel):
    """Answer option ``index`` of an Or input."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["or"] = "or"
    index: StrictInt
    response: InputResponse
    # When set, must match the pending input's id
    input_id: Optional[str] = None


class AndResponse(BaseModel):
    """Answer option ``index`` of an And input (must be its next option)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["and"] = "and"
    index: StrictInt
    response: InputResponse
    input_id: Optional[str] = None


InputResponse = Annotated[
    Union[OptionResponse, AmountResponse, CustomResponse, OrResponse, AndResponse],
    Field(discriminator="type"),
]

OrResponse.model_rebuild()
AndResponse.model_rebuild()

_RESPONSE_ADAPTER: TypeAdapter[InputResponse] = TypeAdapter(InputResponse)


def parse_response(data: Any) -> InputResponse:
    """Validate a wire payload (dict or JSON text) into a typed response."""
    try:
        if isinstance(data, (str, bytes)):
            return _RESPONSE_ADAPTER.validate_json(data)
        return _RESPONSE_ADAPTER.validate_python(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'response'}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedResponseError(f"Malformed response: {problems}") from e


def or_response(index: int, response: InputResponse) -> OrResponse:
    return OrResponse(index=index, response=response)


def and_response(index: int, response: InputResponse) -> AndResponse:
    return AndResponse(index=index, response=response)
