from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .constants import LEVEL_TAGS, TAG_LEVEL, TAG_X_POS, TAG_Z_POS
from .errors import InvalidFormat, MissingField
from .nbt import NBTValue
from .tables import grid_index


@dataclass(frozen=True)
class ChunkCoordinates:
    x: Optional[int] = None
    z: Optional[int] = None

    @property
    def known(self) -> bool:
        return self.x is not None and self.z is not None

    def grid_index(self) -> Optional[int]:
        if not self.known:
            return None
        return grid_index(self.x, self.z)


def check_payload(root: Dict[str, NBTValue]) -> ChunkCoordinates:
    """Check the required chunk fields and return the declared coordinates.

    The Level compound and every name in LEVEL_TAGS must be present. Coordinates
    are only reported when xPos/zPos are int tags; any other type leaves them unknown.
    """
    level = root.get(TAG_LEVEL)
    if level is None:
        raise MissingField(TAG_LEVEL)
    fields = level.as_compound()
    if fields is None:
        raise InvalidFormat(TAG_LEVEL)
    for name in LEVEL_TAGS:
        if name not in fields:
            raise MissingField(name)
    return ChunkCoordinates(x=fields[TAG_X_POS].as_int(), z=fields[TAG_Z_POS].as_int())
