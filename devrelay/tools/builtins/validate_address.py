"""validate_address tool: geocode a free-text address into human-readable text."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from devrelay.infra.errors import GeocoderError
from devrelay.tools.base import BaseTool
from devrelay.tools.result import ToolResult

if TYPE_CHECKING:
    from devrelay.capabilities.geocoder import GeocodeResult, Geocoder
    from devrelay.tools.context import ToolContext

logger = structlog.get_logger()


def describe_geocode(result: GeocodeResult) -> str:
    if not result.valid:
        return f"Address could not be validated: {result.reason or 'no match found'}"
    text = f"Address is valid: {result.formatted_address or 'match found'}"
    if result.latitude is not None and result.longitude is not None:
        text += f" ({result.latitude}, {result.longitude})"
    return text


class ValidateAddressTool(BaseTool):
    """Forward an address to the geocoder; service failures degrade to an explanation."""

    def __init__(self, geocoder: Geocoder) -> None:
        self._geocoder = geocoder

    @property
    def name(self) -> str:
        return "validate_address"

    @property
    def description(self) -> str:
        return "Validate a free-text postal address and return its normalized form and coordinates."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "address": {
                    "type": "string",
                    "description": (
                        "Full address to validate, "
                        "e.g. '1600 Amphitheatre Pkwy, Mountain View, CA'"
                    ),
                },
            },
            "required": ["address"],
        }

    async def execute(
        self, arguments: dict, context: ToolContext | None = None
    ) -> ToolResult:
        address = arguments.get("address")
        if not isinstance(address, str) or not address.strip():
            return ToolResult.error("address is required.")

        try:
            result = await self._geocoder.geocode(address.strip())
        except GeocoderError as e:
            logger.warning(
                "address_validation_unavailable",
                session_id=context.session_id if context else None,
                error=str(e),
            )
            return ToolResult.error(f"Address validation is temporarily unavailable: {e}")

        return ToolResult.text(describe_geocode(result))
