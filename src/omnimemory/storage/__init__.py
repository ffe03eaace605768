"""Chunk storage backends."""

from omnimemory.storage.chunk_cache import ChunkCache, FileChunkCache, InMemoryChunkCache

__all__ = ["ChunkCache", "FileChunkCache", "InMemoryChunkCache"]
