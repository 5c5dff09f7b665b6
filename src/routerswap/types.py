from typing import TypeAlias

BlockNumber: TypeAlias = int
ChainId: TypeAlias = int
Timestamp: TypeAlias = int
