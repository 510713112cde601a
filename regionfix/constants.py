# Sector addressing
SECTOR_SIZE = 4096
HEADER_SECTORS = 2              # location table + timestamp table
HEADER_SIZE = SECTOR_SIZE * HEADER_SECTORS

# Grid geometry
REGION_WIDTH = 32
REGION_CHUNKS = REGION_WIDTH * REGION_WIDTH  # 1024 cells per region file

# Record framing
RECORD_LENGTH_SIZE = 4          # u32 BE length, counts the tag byte plus payload
MAX_RECORD_LENGTH = 128 * SECTOR_SIZE
REASONABLE_RECORD_LENGTH = 1_048_576
MAX_SECTOR_COUNT = 0xFF
MAX_SECTOR_OFFSET = 0xFFFFFF

# Compression tags (0=raw, 1=gzip, 2=zlib)
COMPRESSION_NONE = 0
COMPRESSION_GZIP = 1
COMPRESSION_ZLIB = 2
COMPRESSION_TAGS = (COMPRESSION_NONE, COMPRESSION_GZIP, COMPRESSION_ZLIB)

# Tree decoder limits
MAX_NESTING_DEPTH = 100         # compounds only
MAX_TREE_LEVELS = 256           # compounds and lists together; keeps the decoder off the interpreter's stack limit
MAX_END_LIST_LENGTH = 65536     # lists of TAG_End consume no bytes per element

# Payload field names
TAG_LEVEL = "Level"
TAG_X_POS = "xPos"
TAG_Z_POS = "zPos"
TAG_SECTIONS = "Sections"
TAG_LAST_UPDATE = "LastUpdate"
TAG_INHABITED_TIME = "InhabitedTime"
TAG_HEIGHTMAPS = "Heightmaps"
TAG_ENTITIES = "Entities"
TAG_TILE_ENTITIES = "TileEntities"
TAG_LIQUID_TICKS = "LiquidTicks"
TAG_POST_PROCESSING = "PostProcessing"
TAG_STATUS = "Status"
TAG_STRUCTURES = "Structures"

# Required entries of the Level compound
LEVEL_TAGS = (
    TAG_X_POS,
    TAG_Z_POS,
    TAG_SECTIONS,
    TAG_LAST_UPDATE,
    TAG_INHABITED_TIME,
    TAG_HEIGHTMAPS,
    TAG_ENTITIES,
    TAG_TILE_ENTITIES,
    TAG_LIQUID_TICKS,
    TAG_POST_PROCESSING,
    TAG_STATUS,
    TAG_STRUCTURES,
)

REGION_DIRNAME = "region"
REGION_SUFFIX = ".mca"
