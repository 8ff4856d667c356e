# Context engine package
from .chunking import Chunk, TextChunker, DocumentLoader, chunk_text, truncate
from .embeddings import EmbeddingClient, cosine_similarity
from .vector_store import VectorStore
from .ranking import SearchResult, rank
from .generator import Generator
from .rag_pipeline import RAGPipeline, create_rag_system
from .service import AgentService
