"""State serialization package."""

from money_planner.codec.state_codec import (
    CSV_HEADERS,
    InvalidImportFormatError,
    StateCodec,
)

__all__ = ["CSV_HEADERS", "InvalidImportFormatError", "StateCodec"]
