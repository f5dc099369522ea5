"""
Segment format constants, magic numbers and limits.
"""
import struct

# File naming: <RFC3339 timestamp>.events.zst
SEGMENT_SUFFIX = ".events.zst"
SEGMENT_CONTENT_TYPE = "application/zstd"

# First bytes of every decompressed segment stream
SEGMENT_MAGIC = b"EVSEG\x00\x00\x01"

# Frame header: payload_length(u32) + crc32(u32) + received_at(i64) = 16 bytes
# CRC covers the packed received_at followed by the payload
FRAME_HEADER_STRUCT = struct.Struct("<IIq")
RECEIVED_AT_STRUCT = struct.Struct("<q")
FRAME_HEADER_SIZE = FRAME_HEADER_STRUCT.size

# Limits
MAX_PAYLOAD_BYTES = 4 * 1024 * 1024  # 4 MiB per event
DEFAULT_COMPRESSION_LEVEL = 3

# Rotation
DEFAULT_ROTATION_INTERVAL_SECONDS = 24 * 60 * 60

# Exclusive-create attempts before giving up on a fresh segment name
MAX_NAME_ATTEMPTS = 16
