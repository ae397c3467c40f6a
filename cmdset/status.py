"""Status codes shared by the exception hierarchy and the cmdset.api surface."""

from enum import IntEnum

__all__ = ["StatusCode", "error_message"]


class StatusCode(IntEnum):
    """
    Integer result codes of the cmdset.api surface.

    Zero is success; every failure is negative so that cmdset.api.execute can
    return either a child exit code (>= 0) or a status in one int.
    """
    OK                = 0
    CAPACITY_EXCEEDED = -1
    IO_ERROR          = -2
    NOT_FOUND         = -3
    EXISTS            = -4
    VALIDATION_ERROR  = -5
    DECRYPTION_ERROR  = -6
    CORRUPT_FORMAT    = -7
    SPAWN_ERROR       = -8


_MESSAGES = {
    StatusCode.OK:                "Success",
    StatusCode.CAPACITY_EXCEEDED: "Maximum number of presets reached",
    StatusCode.IO_ERROR:          "File operation error",
    StatusCode.NOT_FOUND:         "Preset not found",
    StatusCode.EXISTS:            "Preset already exists",
    StatusCode.VALIDATION_ERROR:  "Invalid parameters",
    StatusCode.DECRYPTION_ERROR:  "Decryption failed",
    StatusCode.CORRUPT_FORMAT:    "Preset file is corrupt",
    StatusCode.SPAWN_ERROR:       "Could not start command",
}


def error_message(code: int) -> str:
    """Return the human-readable message for *code*, or "Unknown error"."""
    try:
        return _MESSAGES[StatusCode(code)]
    except ValueError:
        return "Unknown error"
