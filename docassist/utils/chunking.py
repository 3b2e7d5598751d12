from typing import List, Dict, Any
from abc import ABC, abstractmethod

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50


class ChunkingStrategy(ABC):
    @abstractmethod
    def chunk(self, text: str) -> List[Dict[str, Any]]:
        pass


class FixedSizeChunking(ChunkingStrategy):
    """Sliding window of ``chunk_size`` characters advancing by ``chunk_size - overlap``."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP):
        if overlap < 0 or chunk_size <= overlap:
            raise ValueError(f"chunk_size must exceed overlap >= 0 (got {chunk_size}/{overlap})")
        self.chunk_size = chunk_size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap

    def chunk(self, text: str) -> List[Dict[str, Any]]:
        windows = []
        for start in range(0, len(text), self.step):
            piece = text[start:start + self.chunk_size]
            windows.append({
                "text": piece,
                "start_char": start,
                "end_char": start + len(piece),
                "chunk_size": len(piece),
            })
        return windows
