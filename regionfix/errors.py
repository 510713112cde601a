class RegionError(Exception):
    """Base class for region file errors."""


# Container level
class RegionHeaderError(RegionError):
    pass


class DefragmentationError(RegionError):
    """Raised when a relocation plan is inconsistent; nothing has been written."""


# Tree decoding
class DecodeError(RegionError):
    pass


class InvalidRootTag(DecodeError):
    def __init__(self, tag_id: int):
        super().__init__(f"Root tag must be a compound, got 0x{tag_id:x}")
        self.tag_id = tag_id


class InvalidTag(DecodeError):
    def __init__(self, tag_id: int):
        super().__init__(f"Invalid tag: 0x{tag_id:x}")
        self.tag_id = tag_id


class InvalidName(DecodeError):
    pass


class RecursionLimit(DecodeError):
    pass


class ListLengthError(DecodeError):
    pass


class PayloadReadError(RegionError):
    """Short read or broken compressed stream while decoding a payload."""


# Payload validation
class ValidationError(RegionError):
    def __init__(self, message: str, name: str):
        super().__init__(message)
        self.name = name


class MissingField(ValidationError):
    def __init__(self, name: str):
        super().__init__(f"Missing tag in chunk data: {name}", name)


class InvalidFormat(ValidationError):
    def __init__(self, name: str):
        super().__init__(f"Unexpected data format for tag {name}", name)


# Record framing
class ChunkError(RegionError):
    pass


class TruncatedRecordError(ChunkError):
    pass


class InvalidLengthError(ChunkError):
    def __init__(self, length: int):
        super().__init__(f"Invalid chunk data length: {length}")
        self.length = length


class InvalidCompressionError(ChunkError):
    def __init__(self, compression: int):
        super().__init__(f"Invalid compression method: {compression}")
        self.compression = compression
