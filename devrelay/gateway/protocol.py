from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from devrelay.infra.errors import GatewayError

# JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = str | int


class RPCRequest(BaseModel):
    """JSON-RPC request or notification (no id). method determines which params to expect."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None = None
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_notification(self) -> bool:
        return self.id is None


class ToolCallParams(BaseModel):
    name: str
    arguments: dict[str, Any] | None = None


class InitializeParams(BaseModel):
    protocolVersion: str | None = None  # noqa: N815 - wire name
    capabilities: dict[str, Any] = Field(default_factory=dict)
    clientInfo: dict[str, Any] | None = None  # noqa: N815 - wire name


class RPCResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None
    result: dict[str, Any]


class RPCErrorData(BaseModel):
    code: int
    message: str
    data: Any | None = None


class RPCError(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None
    error: RPCErrorData


def error_frame(request_id: RequestId | None, code: int, message: str) -> dict[str, Any]:
    frame = RPCError(id=request_id, error=RPCErrorData(code=code, message=message)).model_dump()
    if frame["error"]["data"] is None:
        del frame["error"]["data"]
    return frame


def result_frame(request_id: RequestId | None, result: dict[str, Any]) -> dict[str, Any]:
    return RPCResponse(id=request_id, result=result).model_dump()


def parse_rpc_message(data: Any) -> RPCRequest:
    """Validate a decoded JSON body as a single JSON-RPC request.

    Raises GatewayError(code="INVALID_REQUEST") on schema mismatch.
    """
    if not isinstance(data, dict):
        raise GatewayError(
            f"Invalid RPC request: expected an object, got {type(data).__name__}",
            code="INVALID_REQUEST",
        )
    try:
        return RPCRequest.model_validate(data)
    except ValidationError as e:
        raise GatewayError(f"Invalid RPC request: {e}", code="INVALID_REQUEST") from e
