"""
Decode errors raised by the binary decoders

Every malformed payload surfaces as a DecodeError subclass carrying the
struct being decoded, the field that failed and the byte offset.
"""

from typing import Optional


class DecodeError(ValueError):
    """Base error for payloads that cannot be decoded"""

    def __init__(
        self,
        message: str,
        struct_name: Optional[str] = None,
        field: Optional[str] = None,
        offset: Optional[int] = None
    ):
        super().__init__(message)
        self.struct_name = struct_name
        self.field = field
        self.offset = offset

    def to_dict(self) -> dict:
        """Convert to dictionary for structured logging"""
        return {
            "error": str(self),
            "error_type": type(self).__name__,
            "struct": self.struct_name,
            "field": self.field,
            "offset": self.offset,
        }


class TruncatedDataError(DecodeError):
    """Buffer ended before a field could be read"""


class InvalidUtf8Error(DecodeError):
    """A length-prefixed text field is not valid UTF-8"""


class Base64DecodeError(DecodeError):
    """Payload text is not valid base64"""


class UnknownEventError(DecodeError):
    """Event discriminator matches no known event shape"""
